"""
Layout projector — turns a NetworkPlan into normalized 2-D positions.

Everything lands in the unit square so any renderer can scale it:

  - facilities on one row (y = FACILITY_ROW_Y), ordered west to east
  - one band per region cluster, in cluster order, each with its own row
    below the facilities and a label node just above it
  - one link per site to its nearest active facility

Only consumes engine output; it draws nothing itself.
"""

from dataclasses import dataclass

from pop_engine.geo import geo_to_plane
from pop_engine.ontology import PlanePoint

FACILITY_ROW_Y = 0.15
SITE_BAND_TOP = 0.40
SITE_BAND_BOTTOM = 0.95
LABEL_OFFSET = 0.04
PAD = 0.04


@dataclass(frozen=True)
class NodePosition:
    node_id: str
    x: float
    y: float
    kind: str           # "facility", "site" or "region-label"
    label: str
    active: bool = False


@dataclass(frozen=True)
class LayoutLink:
    source: str
    target: str
    distance_miles: float
    extended_range: bool = False


@dataclass(frozen=True)
class Layout:
    nodes: dict         # node_id -> NodePosition
    links: tuple


def _plane_x(point) -> float:
    """Horizontal position of a point once projected into the unit square."""
    if isinstance(point, PlanePoint):
        return point.x
    return geo_to_plane(point).x


def _spread(count: int, start: float, end: float) -> list:
    """count evenly spaced slot centres between start and end."""
    if count <= 0:
        return []
    step = (end - start) / count
    return [start + (i + 0.5) * step for i in range(count)]


def project_layout(plan, sites, facilities, active_only: bool = True) -> Layout:
    """
    Project a plan onto the unit square.

    Args:
        plan: NetworkPlan from optimize_network().
        sites / facilities: the entities the plan was computed from (names
            and coordinates come from here).
        active_only: draw only active facilities (the optimized view).
    """
    active_ids = plan.selection.active_facility_ids
    site_names = {s.id: s.name for s in sites}

    # ── Facility row ──
    shown = [
        f for f in facilities
        if f.has_location and (not active_only or f.id in active_ids)
    ]
    shown.sort(key=lambda f: (_plane_x(f.location), f.id))
    nodes = {}
    for f, x in zip(shown, _spread(len(shown), PAD, 1.0 - PAD)):
        nodes[f.id] = NodePosition(f.id, x, FACILITY_ROW_Y, "facility", f.name, f.id in active_ids)

    # ── Region bands ──
    regions = list(plan.regions)
    slot_centres = _spread(len(regions), PAD, 1.0 - PAD)
    slot_width = (1.0 - 2 * PAD) / len(regions) if regions else 0.0
    row_step = (SITE_BAND_BOTTOM - SITE_BAND_TOP) / len(regions) if regions else 0.0

    for i, (cluster, centre) in enumerate(zip(regions, slot_centres)):
        row_y = SITE_BAND_TOP + (i + 1) * row_step
        nodes[f"region:{i}"] = NodePosition(
            f"region:{i}", centre, row_y - LABEL_OFFSET, "region-label", cluster.region_name,
        )
        start = centre - slot_width / 2
        for site_id, x in zip(cluster.site_ids, _spread(len(cluster.site_ids), start, start + slot_width)):
            nodes[site_id] = NodePosition(site_id, x, row_y, "site", site_names.get(site_id, site_id))

    # ── Links ──
    assignments = plan.active_assignments if active_only else plan.assignments
    links = tuple(
        LayoutLink(a.site_id, a.facility_id, a.distance_miles, a.extended_range)
        for a in assignments
        if a.site_id in nodes and a.facility_id in nodes
    )
    return Layout(nodes=nodes, links=links)
