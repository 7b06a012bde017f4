"""
Facility coverage optimizer.

Chooses which candidate facilities ("POPs") to activate for a set of sites.
The policy runs in a fixed priority order:

  1. Dedicated-facility guarantee: every DataCenter site that qualifies for
     a dedicated onramp contributes its nearest facility, whatever the budget.
  2. Efficiency-first base selection: the facility that is nearest (within
     the threshold) for the most sites. If no site is within threshold of
     anything, the count ignores the threshold so the result is never empty.
     Ties go to the earliest metro in config.HUB_PREFERENCE, then facility id.
  3. Budget-gated expansion: with a minimal budget, at most one extra
     facility and only for mission-critical redundancy. Otherwise one facility
     per pass is added while some inactive facility would capture enough
     uncovered sites (2, or 1 when the primary goal is performance).
  4. Redundancy expansion: for high / mission-critical redundancy, one more
     facility farther than DIVERSITY_THRESHOLD_MILES from every active one.
     Mission-critical falls back to the most distant remaining facility when
     nothing clears the diversity threshold.

A site is "covered" when its nearest facility is active. The loop in step 3
is bounded by the number of candidate facilities.

solve_min_cover() is a separate MILP (PuLP/CBC) that finds the smallest
facility set reaching every reachable site within the threshold. It is a
baseline for comparison and does not feed the policy above.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Mapping, Optional

import pulp

from pop_engine.config import (
    DIVERSITY_THRESHOLD_MILES,
    HUB_PREFERENCE,
    MIN_CAPTURE_DEFAULT,
    MIN_CAPTURE_PERFORMANCE,
    clamp_threshold,
)
from pop_engine.geo import distance, run_mode
from pop_engine.ontology import (
    Budget,
    Facility,
    PrimaryGoal,
    Redundancy,
    RequirementsProfile,
    SelectionReason,
    SelectionResult,
)
from pop_engine.resolver import is_onramp_eligible, resolve_all

logger = logging.getLogger(__name__)


def preference_key(facility: Facility) -> tuple:
    """Sort key for tie-breaks: preferred hub metros first, then id."""
    if facility.metro in HUB_PREFERENCE:
        rank = HUB_PREFERENCE.index(facility.metro)
    else:
        rank = len(HUB_PREFERENCE)
    return (rank, facility.id)


def _best_by_count(counts: Counter, by_id: dict) -> str:
    return min(counts, key=lambda fid: (-counts[fid], preference_key(by_id[fid])))


def _expansion_limit(requirements: RequirementsProfile, n_facilities: int) -> int:
    if requirements.budget == Budget.MINIMAL:
        return 1 if requirements.redundancy == Redundancy.MISSION_CRITICAL else 0
    return n_facilities


def _diverse_candidate(facilities, active, assignments, by_id, allow_fallback: bool) -> Optional[str]:
    inactive = [f for f in facilities if f.id not in active]
    if not inactive:
        return None

    active_facilities = [by_id[fid] for fid in sorted(active)]
    spread = {
        f.id: min(distance(f.location, a.location) for a in active_facilities)
        for f in inactive
    }
    load = Counter(a.facility_id for a in assignments)

    diverse = [f for f in inactive if spread[f.id] > DIVERSITY_THRESHOLD_MILES]
    if diverse:
        return min(diverse, key=lambda f: (-load[f.id], preference_key(f))).id
    if allow_fallback:
        return min(inactive, key=lambda f: (-spread[f.id], preference_key(f))).id
    return None


def select_facilities(
    sites,
    facilities,
    requirements: RequirementsProfile,
    bias: Optional[Mapping] = None,
) -> SelectionResult:
    """
    Select the active facility set for the given sites and requirements.

    Args:
        sites: Site entities; those without usable coordinates are ignored.
        facilities: Candidate Facility entities.
        requirements: Budget / redundancy / latency profile and threshold.
        bias: Optional regional bias table (defaults to config.REGION_BIAS).

    Returns:
        SelectionResult with the active ids, the reason each was added,
        the sites left uncovered, and the number of expansion passes.
    """
    # ── 0. Inputs ────────────────────────────────────────────────────────
    sites = [s for s in sites if s.has_location]
    facilities = [f for f in facilities if f.has_location]
    if not sites or not facilities:
        return SelectionResult()

    run_mode(sites + facilities)
    threshold = requirements.threshold_miles
    by_id = {f.id: f for f in facilities}
    assignments, _ = resolve_all(sites, facilities, threshold, bias)
    nearest = {a.site_id: a for a in assignments}

    # facility_id -> reason; insertion order records the decision order
    active: dict = {}

    def activate(facility_id: str, reason: SelectionReason) -> None:
        if facility_id not in active:
            active[facility_id] = reason
            logger.debug("Activated %s (%s)", facility_id, reason.value)

    # ── 1. Dedicated-facility guarantee ──────────────────────────────────
    for site in sorted(sites, key=lambda s: s.id):
        if is_onramp_eligible(site, facilities):
            activate(nearest[site.id].facility_id, SelectionReason.DEDICATED)

    # ── 2. Efficiency-first base selection ───────────────────────────────
    counts = Counter(a.facility_id for a in assignments if a.within_threshold)
    if not counts:
        logger.debug("No site within %.0f miles of any facility; counting all assignments", threshold)
        counts = Counter(a.facility_id for a in assignments)
    activate(_best_by_count(counts, by_id), SelectionReason.BASE)

    # ── 3. Budget-gated expansion ────────────────────────────────────────
    min_capture = (
        MIN_CAPTURE_PERFORMANCE
        if requirements.primary_goal == PrimaryGoal.PERFORMANCE
        else MIN_CAPTURE_DEFAULT
    )
    limit = _expansion_limit(requirements, len(facilities))
    added = 0
    passes = 0
    while added < limit and passes < len(facilities):
        passes += 1
        capture = Counter(
            a.facility_id for a in assignments
            if a.facility_id not in active and a.within_threshold
        )
        if not capture:
            break
        candidate = _best_by_count(capture, by_id)
        if capture[candidate] < min_capture:
            break
        activate(candidate, SelectionReason.EXPANSION)
        added += 1

    # ── 4. Redundancy expansion ──────────────────────────────────────────
    if requirements.redundancy.wants_diversity:
        candidate = _diverse_candidate(
            facilities, active, assignments, by_id,
            allow_fallback=requirements.redundancy == Redundancy.MISSION_CRITICAL,
        )
        if candidate is not None:
            activate(candidate, SelectionReason.REDUNDANCY)

    uncovered = tuple(sorted(a.site_id for a in assignments if a.facility_id not in active))
    logger.info(
        "Selected %d of %d facilities for %d sites (%d uncovered)",
        len(active), len(facilities), len(sites), len(uncovered),
    )
    return SelectionResult(
        active_facility_ids=frozenset(active),
        reasons=dict(active),
        uncovered_site_ids=uncovered,
        passes=passes,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# EXACT MINIMUM COVER (BASELINE)
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MinCoverResult:
    """Container for the set-cover MILP output."""
    status: str                                 # "Optimal", "Infeasible", ...
    active_facility_ids: frozenset = frozenset()
    uncoverable_site_ids: tuple = ()            # no facility within threshold


def solve_min_cover(sites, facilities, threshold_miles: Optional[float] = None) -> MinCoverResult:
    """
    Smallest facility set such that every site with at least one facility
    within the threshold has an active facility within the threshold.

    Classic set-cover MILP: y[j] binary = facility j active, minimize sum(y)
    subject to sum(y[j] for j reaching site i) >= 1 for each reachable site.
    """
    sites = [s for s in sites if s.has_location]
    facilities = sorted((f for f in facilities if f.has_location), key=lambda f: f.id)
    if not sites or not facilities:
        return MinCoverResult(status="No sites or facilities")

    run_mode(sites + facilities)
    threshold = clamp_threshold(threshold_miles)

    reach = {
        s.id: [j for j, f in enumerate(facilities) if distance(s.location, f.location) <= threshold]
        for s in sites
    }
    uncoverable = tuple(sorted(sid for sid, js in reach.items() if not js))
    coverable = {sid: js for sid, js in reach.items() if js}
    if not coverable:
        return MinCoverResult(status="No site within threshold", uncoverable_site_ids=uncoverable)

    prob = pulp.LpProblem("MinFacilityCover", pulp.LpMinimize)
    y = pulp.LpVariable.dicts("y", range(len(facilities)), cat="Binary")
    prob += pulp.lpSum(y[j] for j in range(len(facilities)))

    for i, sid in enumerate(sorted(coverable)):
        prob += pulp.lpSum(y[j] for j in coverable[sid]) >= 1, f"Cover_{i}"

    prob.solve(pulp.PULP_CBC_CMD(msg=0))
    status = pulp.LpStatus[prob.status]
    if status != "Optimal":
        return MinCoverResult(status=status, uncoverable_site_ids=uncoverable)

    # > 0.5 filters solver noise on binaries
    chosen = frozenset(
        facilities[j].id for j in range(len(facilities))
        if y[j].varValue is not None and y[j].varValue > 0.5
    )
    return MinCoverResult(status="Optimal", active_facility_ids=chosen, uncoverable_site_ids=uncoverable)
