"""
Network topology — NetworkX DiGraph of an optimized plan.

Represents regions, sites and facilities as typed nodes with edges for
regional membership (IN_REGION), the site's link to its nearest active
facility (ASSIGNED_TO), and geographic diversity between active facilities
(DIVERSE_FROM).

Enables "what if" queries that are awkward on flat lists:
  - Impact analysis: "Which sites lose in-range coverage if POP X fails?"
  - Failover: "Where would this site go if its POP failed?"
  - Load: "How many sites does each active POP carry?"

Node IDs use type prefixes (region:, site:, facility:) to avoid collisions
between entity types that share ids.
"""

import networkx as nx

from pop_engine.config import DIVERSITY_THRESHOLD_MILES
from pop_engine.geo import distance


class NetworkTopology:
    """NetworkX DiGraph built from a NetworkPlan and its input entities."""

    def __init__(self, plan, sites, facilities):
        self._plan = plan
        self._sites = {s.id: s for s in sites}
        self._facilities = {f.id: f for f in facilities}
        self.graph = nx.DiGraph()
        self._build()

    def _build(self):
        g = self.graph
        active = self._plan.selection.active_facility_ids
        reasons = self._plan.selection.reasons

        # ── Region nodes + IN_REGION edges ──
        for cluster in self._plan.regions:
            region_node = f"region:{cluster.region_key}"
            g.add_node(region_node, node_type="region", name=cluster.region_name)
            for site_id in cluster.site_ids:
                site = self._sites[site_id]
                g.add_node(
                    f"site:{site_id}", node_type="site", name=site.name,
                    category=site.category.value, state=site.state,
                )
                g.add_edge(f"site:{site_id}", region_node, edge_type="IN_REGION")

        # ── Facility nodes ──
        for fid, facility in self._facilities.items():
            reason = reasons.get(fid)
            g.add_node(
                f"facility:{fid}", node_type="facility", name=facility.name,
                metro=facility.metro, active=fid in active,
                reason=reason.value if reason is not None else None,
            )

        # ── ASSIGNED_TO edges (site -> nearest active facility) ──
        for a in self._plan.active_assignments:
            site = self._sites[a.site_id]
            if f"site:{a.site_id}" not in g:
                g.add_node(f"site:{a.site_id}", node_type="site", name=site.name,
                           category=site.category.value, state=site.state)
            g.add_edge(
                f"site:{a.site_id}", f"facility:{a.facility_id}",
                edge_type="ASSIGNED_TO",
                distance_miles=a.distance_miles,
                extended_range=a.extended_range,
            )

        # ── DIVERSE_FROM edges (between active facilities, both directions) ──
        located = sorted(fid for fid in active if self._facilities[fid].has_location)
        for i, a in enumerate(located):
            for b in located[i + 1:]:
                miles = distance(self._facilities[a].location, self._facilities[b].location)
                if miles > DIVERSITY_THRESHOLD_MILES:
                    g.add_edge(f"facility:{a}", f"facility:{b}", edge_type="DIVERSE_FROM", distance_miles=miles)
                    g.add_edge(f"facility:{b}", f"facility:{a}", edge_type="DIVERSE_FROM", distance_miles=miles)

    # ═══════════════════════════════════════════════════════════════════════
    # QUERY METHODS
    # ═══════════════════════════════════════════════════════════════════════

    def get_nodes_by_type(self, node_type: str) -> list[str]:
        """Return node IDs of the given type (region, site, facility)."""
        return sorted(n for n, d in self.graph.nodes(data=True)
                      if d.get("node_type") == node_type)

    def sites_served(self, facility_id: str) -> list[str]:
        """Site ids whose nearest active facility is this one."""
        node = f"facility:{facility_id}"
        if node not in self.graph:
            return []
        return sorted(
            source.replace("site:", "", 1)
            for source, _, attrs in self.graph.in_edges(node, data=True)
            if attrs.get("edge_type") == "ASSIGNED_TO"
        )

    def facility_load(self) -> dict[str, int]:
        """{facility_id: number of assigned sites} for every active facility."""
        return {
            fid: len(self.sites_served(fid))
            for fid in sorted(self._plan.selection.active_facility_ids)
        }

    def failover_facility(self, site_id: str):
        """Nearest active facility other than the site's current one, or None."""
        site = self._sites.get(site_id)
        current = self._plan.assignment_for(site_id)
        if site is None or current is None or not site.has_location:
            return None
        options = [
            (distance(site.location, self._facilities[fid].location), fid)
            for fid in self._plan.selection.active_facility_ids
            if fid != current.facility_id and self._facilities[fid].has_location
        ]
        if not options:
            return None
        return min(options)[1]

    def impact_analysis(self, facility_id: str) -> list[str]:
        """Which sites lose in-range coverage if this facility fails?

        Returns the ids of sites served by the facility whose failover
        target is missing or beyond the plan's distance threshold.
        """
        stranded = []
        for site_id in self.sites_served(facility_id):
            fallback = self.failover_facility(site_id)
            if fallback is None:
                stranded.append(site_id)
                continue
            miles = distance(self._sites[site_id].location, self._facilities[fallback].location)
            if miles > self._plan.threshold_miles:
                stranded.append(site_id)
        return stranded

    def diverse_pairs(self) -> list[tuple]:
        """Active facility pairs farther apart than the diversity threshold."""
        return sorted(
            (a.replace("facility:", "", 1), b.replace("facility:", "", 1))
            for a, b, attrs in self.graph.edges(data=True)
            if attrs.get("edge_type") == "DIVERSE_FROM" and a < b
        )
