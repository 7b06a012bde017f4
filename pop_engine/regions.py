"""
Regional clustering — groups sites into named US regions for display
ordering and for the resolver's regional bias.

Classification per site:
  1. state code present and listed in a region  -> that region
  2. state code present but not listed          -> "Other"
  3. no state, usable coordinates               -> first region whose
                                                   longitude (and latitude)
                                                   band contains the site
  4. neither                                    -> dropped from clustering

Display naming is a deterministic heuristic on top of the base regions:
a region whose sites all share one state is shown under the state's full
name, and a populated coastal pair listed in DISPLAY_MERGES renames the
first member to the broader label ("California" + "Pacific Northwest" ->
"West Coast"). Clusters are ordered west to east by mean longitude.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pop_engine.coords import STATE_NAMES
from pop_engine.geo import as_geo
from pop_engine.ontology import GeoPoint, RegionCluster, Site

logger = logging.getLogger(__name__)

OTHER_REGION = "Other"


@dataclass(frozen=True)
class RegionSpec:
    name: str
    states: frozenset
    lon_range: tuple
    lat_range: tuple = (-90.0, 90.0)

    def contains(self, latitude: float, longitude: float) -> bool:
        lo_lon, hi_lon = self.lon_range
        lo_lat, hi_lat = self.lat_range
        return lo_lon <= longitude <= hi_lon and lo_lat <= latitude <= hi_lat


# Ordered: the first matching band wins for sites without a state.
REGION_TABLE = (
    RegionSpec("Pacific Northwest", frozenset({"WA", "OR"}), (-125.0, -116.5), (42.0, 49.5)),
    RegionSpec("California", frozenset({"CA"}), (-125.0, -114.0), (32.0, 42.0)),
    RegionSpec("Southwest", frozenset({"AZ", "NV", "UT", "NM"}), (-119.0, -103.0)),
    RegionSpec("Mountain West", frozenset({"CO", "WY", "MT", "ID"}), (-117.0, -102.0)),
    RegionSpec("Texas", frozenset({"TX"}), (-107.0, -93.5), (25.5, 36.5)),
    RegionSpec(
        "Midwest",
        frozenset({"IL", "IN", "OH", "MI", "WI", "MN", "IA", "MO", "KS", "NE", "ND", "SD", "OK"}),
        (-104.0, -80.0),
    ),
    RegionSpec(
        "Southeast",
        frozenset({"FL", "GA", "AL", "MS", "LA", "AR", "TN", "KY", "SC", "NC", "VA", "WV"}),
        (-92.0, -75.0),
    ),
    RegionSpec(
        "Northeast",
        frozenset({"NY", "NJ", "PA", "CT", "RI", "MA", "VT", "NH", "ME", "MD", "DE", "DC"}),
        (-80.0, -66.0),
    ),
)

_REGION_ORDER = {spec.name: i for i, spec in enumerate(REGION_TABLE)}

# base region -> (partner region that must also be populated, display label)
DISPLAY_MERGES = {
    "California": ("Pacific Northwest", "West Coast"),
}


def site_geo(site: Site) -> Optional[GeoPoint]:
    """Geographic position of a site, projecting plane points onto the US box."""
    if not site.has_location:
        return None
    return as_geo(site.location)


def classify_region(site: Site) -> Optional[str]:
    """Base region name for a site, or None when it cannot be placed."""
    if site.state:
        for spec in REGION_TABLE:
            if site.state in spec.states:
                return spec.name
        return OTHER_REGION

    point = site_geo(site)
    if point is None:
        return None
    for spec in REGION_TABLE:
        if spec.contains(point.latitude, point.longitude):
            return spec.name
    return OTHER_REGION


def _display_name(region: str, members: list, populated: set) -> str:
    name = region
    states = {s.state for s in members}
    if len(states) == 1:
        (only_state,) = states
        if only_state:
            name = STATE_NAMES.get(only_state, only_state)

    merge = DISPLAY_MERGES.get(region)
    if merge is not None and merge[0] in populated:
        name = merge[1]
    return name


def _mean_longitude(members: list) -> Optional[float]:
    longitudes = [p.longitude for p in (site_geo(s) for s in members) if p is not None]
    if not longitudes:
        return None
    return sum(longitudes) / len(longitudes)


def _site_sort_key(site: Site):
    point = site_geo(site)
    if point is None:
        return (1, 0.0, site.id)
    return (0, point.longitude, site.id)


def cluster_by_region(sites) -> list:
    """Group sites into RegionClusters ordered west to east.

    Sites with neither a state nor usable coordinates are left out.
    """
    grouped: dict = {}
    dropped = []
    for site in sites:
        region = classify_region(site)
        if region is None:
            dropped.append(site.id)
            continue
        grouped.setdefault(region, []).append(site)

    if dropped:
        logger.warning("Clustering skipped %d site(s) with no state or coordinates: %s",
                       len(dropped), dropped)

    populated = set(grouped)
    clusters = []
    for region in sorted(grouped, key=lambda r: (_REGION_ORDER.get(r, len(_REGION_ORDER)), r)):
        members = sorted(grouped[region], key=_site_sort_key)
        clusters.append(RegionCluster(
            region_name=_display_name(region, members, populated),
            site_ids=tuple(s.id for s in members),
            average_longitude=_mean_longitude(members),
            region_key=region,
        ))

    clusters.sort(key=lambda c: (
        c.average_longitude is None,
        c.average_longitude if c.average_longitude is not None else 0.0,
        _REGION_ORDER.get(c.region_key, len(_REGION_ORDER)),
    ))
    return clusters
