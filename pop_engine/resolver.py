"""
Nearest-facility resolver.

Each site is assigned to the facility with the smallest biased distance.
The bias is a declarative table (config.REGION_BIAS) of multipliers keyed by
the site's base region and the facility's metro code; it only reorders
candidates, the reported distance is always the true distance.

Facilities within TIE_EPSILON_MILES of the best biased distance are treated
as tied and the lexicographically smallest facility id wins, so results are
identical across runs and input orderings.

A distance threshold never drops a site: the nearest facility is still
returned, flagged within_threshold=False ("extended range").
"""

import logging
from typing import Mapping, Optional

from pop_engine.config import ONRAMP_RADIUS_MILES, REGION_BIAS, TIE_EPSILON_MILES, clamp_threshold
from pop_engine.geo import distance, run_mode
from pop_engine.ontology import Assignment, Facility, Site
from pop_engine.regions import classify_region

logger = logging.getLogger(__name__)


def bias_multiplier(region: Optional[str], facility: Facility, bias: Mapping) -> float:
    if region is None or facility.metro is None:
        return 1.0
    return float(bias.get(region, {}).get(facility.metro, 1.0))


def onramp_eligible_at(site: Site, facility: Facility, distance_miles: float) -> bool:
    """Can this site take a dedicated onramp into this facility?

    DataCenter sites only, and only when they share the facility's metro
    (by metro code, or by sitting within ONRAMP_RADIUS_MILES of it).
    """
    if not site.is_data_center:
        return False
    if site.metro is not None and site.metro == facility.metro:
        return True
    return distance_miles <= ONRAMP_RADIUS_MILES


def is_onramp_eligible(site: Site, facilities) -> bool:
    """True when the site qualifies for a dedicated onramp at any facility."""
    if not site.is_data_center or not site.has_location:
        return False
    return any(
        onramp_eligible_at(site, f, distance(site.location, f.location))
        for f in facilities
        if f.has_location
    )


def resolve_nearest(
    site: Site,
    facilities,
    threshold_miles: Optional[float] = None,
    bias: Optional[Mapping] = None,
) -> Optional[Assignment]:
    """Closest eligible facility for one site, or None.

    None is returned only when the site has no usable coordinates or no
    facility has any. A given threshold is clamped like the pipeline's;
    None means no threshold at all.
    """
    if not site.has_location:
        return None
    if threshold_miles is not None:
        threshold_miles = clamp_threshold(threshold_miles)
    bias = REGION_BIAS if bias is None else bias
    region = classify_region(site) if bias else None

    candidates = []
    for facility in facilities:
        if not facility.has_location:
            continue
        miles = distance(site.location, facility.location)
        weighted = miles * bias_multiplier(region, facility, bias)
        candidates.append((weighted, facility.id, miles))

    if not candidates:
        return None

    best = min(c[0] for c in candidates)
    tied = [c for c in candidates if c[0] <= best + TIE_EPSILON_MILES]
    _, facility_id, miles = min(tied, key=lambda c: c[1])

    return Assignment(
        site_id=site.id,
        facility_id=facility_id,
        distance_miles=miles,
        within_threshold=threshold_miles is None or miles <= threshold_miles,
    )


def resolve_all(
    sites,
    facilities,
    threshold_miles: Optional[float] = None,
    bias: Optional[Mapping] = None,
) -> tuple:
    """Resolve every site.

    Returns (assignments, skipped_site_ids). Skipped ids are the sites that
    have no usable coordinates; with an empty facility list nothing is
    assigned but nothing is skipped either.
    """
    sites = list(sites)
    facilities = list(facilities)
    run_mode(sites + facilities)
    if threshold_miles is not None:
        threshold_miles = clamp_threshold(threshold_miles)

    assignments = []
    skipped = []
    for site in sites:
        if not site.has_location:
            skipped.append(site.id)
            continue
        assignment = resolve_nearest(site, facilities, threshold_miles, bias)
        if assignment is not None:
            assignments.append(assignment)

    if skipped:
        logger.warning("Skipped %d site(s) without usable coordinates: %s", len(skipped), skipped)
    return assignments, skipped


def resolve_against(
    sites,
    facilities,
    active_ids,
    threshold_miles: Optional[float] = None,
    bias: Optional[Mapping] = None,
) -> list:
    """Assignments restricted to the active facilities (what gets drawn)."""
    active = [f for f in facilities if f.id in active_ids]
    assignments, _ = resolve_all(sites, active, threshold_miles, bias)
    return assignments
