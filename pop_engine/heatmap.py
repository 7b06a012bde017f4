"""
Suitability heat-map scorer.

Scores every (site, facility) pair 0-100 from five fixed-weight components:

  distance     max(0, (2500 - d) / 2500) * 40
  cost         +20 when the budget is minimal and the facility is in a
               tier-1 (low-cost) metro, +10 otherwise
  performance  +25 when latency sensitivity is low/critical and d < 800
  redundancy   +15 when redundancy is high/mission-critical and some other
               facility is within 1200 miles of the site (a failover target)
  onramp       +30 when the site qualifies for a dedicated onramp there

The sum is clamped to [0, 100]. The per-component breakdown is kept on
every FacilityScore so a recommendation can be audited, not just ranked.
"""

import logging

import pandas as pd

from pop_engine.config import (
    COST_BONUS_LOW_COST,
    COST_BONUS_STANDARD,
    DISTANCE_WEIGHT,
    MAX_MEANINGFUL_DISTANCE_MILES,
    ONRAMP_BONUS,
    PERFORMANCE_BONUS,
    PERFORMANCE_NEAR_MILES,
    REDUNDANCY_BONUS,
    REDUNDANCY_NEARBY_MILES,
    SCORE_MAX,
    SCORE_MIN,
)
from pop_engine.coords import TIER1_METROS
from pop_engine.geo import distance, run_mode
from pop_engine.ontology import (
    Budget,
    Facility,
    FacilityScore,
    RequirementsProfile,
    ScoreBreakdown,
    Site,
)
from pop_engine.resolver import onramp_eligible_at

logger = logging.getLogger(__name__)


def is_low_cost(facility: Facility) -> bool:
    return facility.tier == 1 or facility.metro in TIER1_METROS


def score_pair(
    site: Site,
    facility: Facility,
    miles: float,
    requirements: RequirementsProfile,
    has_failover: bool,
) -> FacilityScore:
    """Score one facility for one site given the precomputed distance.

    has_failover: whether another facility lies within the redundancy
    radius of the site.
    """
    distance_part = max(0.0, (MAX_MEANINGFUL_DISTANCE_MILES - miles) / MAX_MEANINGFUL_DISTANCE_MILES) * DISTANCE_WEIGHT

    if requirements.budget == Budget.MINIMAL and is_low_cost(facility):
        cost_part = COST_BONUS_LOW_COST
    else:
        cost_part = COST_BONUS_STANDARD

    performance_part = 0.0
    if requirements.latency_sensitivity.is_sensitive and miles < PERFORMANCE_NEAR_MILES:
        performance_part = PERFORMANCE_BONUS

    redundancy_part = 0.0
    if requirements.redundancy.wants_diversity and has_failover:
        redundancy_part = REDUNDANCY_BONUS

    onramp_part = ONRAMP_BONUS if onramp_eligible_at(site, facility, miles) else 0.0

    breakdown = ScoreBreakdown(
        distance=distance_part,
        cost=cost_part,
        performance=performance_part,
        redundancy=redundancy_part,
        onramp=onramp_part,
    )
    return FacilityScore(
        site_id=site.id,
        facility_id=facility.id,
        score=min(SCORE_MAX, max(SCORE_MIN, breakdown.total)),
        distance_miles=miles,
        breakdown=breakdown,
    )


def score_all(sites, facilities, requirements: RequirementsProfile) -> list:
    """One FacilityScore per located (site, facility) pair.

    Sites keep their input order; within a site, scores run from best to
    worst (ties by distance, then facility id).
    """
    sites = [s for s in sites if s.has_location]
    facilities = [f for f in facilities if f.has_location]
    if not sites or not facilities:
        return []
    run_mode(sites + facilities)

    results = []
    for site in sites:
        miles = {f.id: distance(site.location, f.location) for f in facilities}
        site_scores = []
        for facility in facilities:
            has_failover = any(
                other.id != facility.id and miles[other.id] <= REDUNDANCY_NEARBY_MILES
                for other in facilities
            )
            site_scores.append(score_pair(site, facility, miles[facility.id], requirements, has_failover))
        site_scores.sort(key=lambda fs: (-fs.score, fs.distance_miles, fs.facility_id))
        results.extend(site_scores)

    logger.debug("Scored %d site/facility pairs", len(results))
    return results


# ── Tabular views ────────────────────────────────────────────────────────────

SCORE_COLUMNS = [
    "site_id", "facility_id", "score", "distance_miles",
    "distance", "cost", "performance", "redundancy", "onramp",
]


def scores_frame(scores) -> pd.DataFrame:
    """Long-form DataFrame, one row per score with its component columns."""
    rows = [
        {
            "site_id": fs.site_id,
            "facility_id": fs.facility_id,
            "score": fs.score,
            "distance_miles": fs.distance_miles,
            **fs.breakdown.as_dict(),
        }
        for fs in scores
    ]
    return pd.DataFrame(rows, columns=SCORE_COLUMNS)


def heatmap_matrix(scores) -> pd.DataFrame:
    """Site x facility score matrix for heat-map rendering.

    Rows keep the order of the score list; columns are sorted by facility id.
    """
    df = scores_frame(scores)
    if df.empty:
        return pd.DataFrame()
    site_order = list(dict.fromkeys(df["site_id"]))
    facility_order = sorted(df["facility_id"].unique())
    matrix = df.pivot(index="site_id", columns="facility_id", values="score")
    return matrix.reindex(index=site_order, columns=facility_order)


def best_facility_per_site(scores) -> dict:
    """site_id -> highest-scoring facility_id."""
    best = {}
    for fs in scores:
        best.setdefault(fs.site_id, fs.facility_id)
    return best
