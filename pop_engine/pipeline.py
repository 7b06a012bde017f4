"""
Full engine pipeline.

    sites + facilities + requirements
        -> resolver (nearest facility per site)
        -> regional clustering
        -> coverage optimizer (active facility set)
        -> heat-map scorer

optimize_network() is a pure function: identical inputs give identical
NetworkPlans and no state survives between calls. Callers that re-run it on
every UI event can memoize on plan_cache_key().
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from pop_engine.geo import DistanceMode, run_mode
from pop_engine.heatmap import score_all
from pop_engine.ontology import GeoPoint, PlanePoint, RequirementsProfile, SelectionResult
from pop_engine.optimizer import select_facilities
from pop_engine.regions import cluster_by_region
from pop_engine.resolver import resolve_against, resolve_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkPlan:
    """Everything the engine produces for one invocation."""
    assignments: tuple = ()             # nearest facility over all candidates
    regions: tuple = ()
    selection: SelectionResult = field(default_factory=SelectionResult)
    scores: tuple = ()
    skipped_site_ids: tuple = ()        # no usable coordinates
    active_assignments: tuple = ()      # nearest facility within the active set
    threshold_miles: float = 0.0
    mode: DistanceMode = DistanceMode.GEOGRAPHIC

    def scores_for(self, site_id: str) -> list:
        return [fs for fs in self.scores if fs.site_id == site_id]

    def assignment_for(self, site_id: str, active_only: bool = True):
        source = self.active_assignments if active_only else self.assignments
        for a in source:
            if a.site_id == site_id:
                return a
        return None


def optimize_network(
    sites,
    facilities,
    requirements: RequirementsProfile,
    bias: Optional[Mapping] = None,
) -> NetworkPlan:
    """Run the whole engine once and return a NetworkPlan."""
    sites = list(sites)
    facilities = list(facilities)
    mode = run_mode(sites + facilities)
    threshold = requirements.threshold_miles

    assignments, skipped = resolve_all(sites, facilities, threshold, bias)
    regions = cluster_by_region(sites)
    selection = select_facilities(sites, facilities, requirements, bias)
    scores = score_all(sites, facilities, requirements)
    active_assignments = resolve_against(
        sites, facilities, selection.active_facility_ids, threshold, bias
    )

    logger.info(
        "Plan: %d sites (%d skipped), %d facilities, %d active, %d regions",
        len(sites), len(skipped), len(facilities),
        len(selection.active_facility_ids), len(regions),
    )
    return NetworkPlan(
        assignments=tuple(assignments),
        regions=tuple(regions),
        selection=selection,
        scores=tuple(scores),
        skipped_site_ids=tuple(skipped),
        active_assignments=tuple(active_assignments),
        threshold_miles=threshold,
        mode=mode,
    )


# ── Cache key ────────────────────────────────────────────────────────────────

def _point_record(point):
    if isinstance(point, GeoPoint):
        return ["geo", repr(point.latitude), repr(point.longitude)]
    if isinstance(point, PlanePoint):
        return ["plane", repr(point.x), repr(point.y)]
    return None


def plan_cache_key(sites, facilities, requirements: RequirementsProfile) -> str:
    """SHA-256 over a canonical serialization of the pipeline inputs.

    Input order is part of the key because score output follows site order.
    """
    payload = {
        "sites": [
            [s.id, s.name, s.category.value, _point_record(s.location), s.state, s.metro]
            for s in sites
        ],
        "facilities": [
            [f.id, f.name, _point_record(f.location), f.metro, f.tier]
            for f in facilities
        ],
        "requirements": [
            requirements.primary_goal.value,
            requirements.budget.value,
            requirements.redundancy.value,
            requirements.latency_sensitivity.value,
            repr(requirements.threshold_miles),
        ],
    }
    blob = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()
