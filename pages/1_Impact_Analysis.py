"""
Impact Analysis page — schematic view and POP failure simulation.

Built on NetworkTopology (pop_engine/topology.py), a NetworkX DiGraph with
region, site and facility nodes. Uses the same requirements as the home
page (stored in session state) so both pages show the same plan.

Tabs:
  1. Schematic — project_layout() output drawn on the unit square: active
     POPs along the top, one band per region (west to east) below, links
     dashed when the site is served beyond the distance threshold.

  2. Failure Simulation — pick an active POP to take down. Shows where each
     of its sites would fail over and which sites would be left without an
     in-range POP.
"""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from pop_engine.config import setup_logging
from pop_engine.data_loader import NetworkData
from pop_engine.layout import project_layout
from pop_engine.ontology import RequirementsProfile
from pop_engine.pipeline import optimize_network
from pop_engine.topology import NetworkTopology


@st.cache_resource
def load_data():
    setup_logging()
    return NetworkData.from_csv()


st.set_page_config(page_title="Impact Analysis — POP Planner", layout="wide")

data = load_data()
requirements = st.session_state.get("requirements", RequirementsProfile())
plan = optimize_network(data.sites, data.facilities, requirements)
topology = NetworkTopology(plan, data.sites, data.facilities)

st.title("Impact Analysis")
st.caption(
    f"Budget {requirements.budget.value}, redundancy {requirements.redundancy.value}, "
    f"threshold {plan.threshold_miles:.0f} mi"
)

tab1, tab2 = st.tabs(["Schematic", "Failure Simulation"])

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 1: SCHEMATIC
# ═══════════════════════════════════════════════════════════════════════════════
with tab1:
    show_all = st.toggle("Include inactive POPs", value=False)
    layout = project_layout(plan, data.sites, data.facilities, active_only=not show_all)

    fig = go.Figure()
    for link in layout.links:
        a, b = layout.nodes[link.source], layout.nodes[link.target]
        fig.add_trace(go.Scatter(
            x=[a.x, b.x], y=[a.y, b.y], mode="lines",
            line=dict(width=1, color="orange" if link.extended_range else "lightgray",
                      dash="dash" if link.extended_range else "solid"),
            hoverinfo="skip", showlegend=False,
        ))

    for kind, style in (
        ("facility", dict(size=16, symbol="square")),
        ("site", dict(size=8, symbol="circle", color="seagreen")),
    ):
        nodes = [n for n in layout.nodes.values() if n.kind == kind]
        marker = dict(style)
        if kind == "facility":
            marker["color"] = ["royalblue" if n.active else "gray" for n in nodes]
        fig.add_trace(go.Scatter(
            x=[n.x for n in nodes], y=[n.y for n in nodes],
            mode="markers+text" if kind == "facility" else "markers",
            marker=marker,
            text=[n.label for n in nodes],
            textposition="top center",
            hoverinfo="text", name="POPs" if kind == "facility" else "Sites",
        ))

    labels = [n for n in layout.nodes.values() if n.kind == "region-label"]
    fig.add_trace(go.Scatter(
        x=[n.x for n in labels], y=[n.y for n in labels], mode="text",
        text=[f"<b>{n.label}</b>" for n in labels], hoverinfo="skip", showlegend=False,
    ))

    # layout y grows downward
    fig.update_layout(
        xaxis=dict(range=[0, 1], visible=False),
        yaxis=dict(range=[1, 0], visible=False),
        height=550, margin=dict(l=0, r=0, t=10, b=0),
        plot_bgcolor="white",
    )
    st.plotly_chart(fig, use_container_width=True)

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 2: FAILURE SIMULATION
# ═══════════════════════════════════════════════════════════════════════════════
with tab2:
    active = sorted(plan.selection.active_facility_ids)
    if not active:
        st.info("No active POPs: load sites and facilities with coordinates first.")
    else:
        failed = st.selectbox("POP to take down", active, format_func=data.facility_name)
        served = topology.sites_served(failed)
        stranded = set(topology.impact_analysis(failed))

        col1, col2, col3 = st.columns(3)
        col1.metric("Sites served", len(served))
        col2.metric("Fail over in range", len(served) - len(stranded))
        col3.metric("Stranded", len(stranded))

        if not served:
            st.success(f"{data.facility_name(failed)} carries no sites in this plan.")
        elif stranded:
            st.error(
                f"{len(stranded)} site(s) would have no POP within "
                f"{plan.threshold_miles:.0f} miles"
            )
        else:
            st.success("Every site keeps an in-range POP.")

        rows = []
        for site_id in served:
            fallback = topology.failover_facility(site_id)
            rows.append({
                "Site": data.site_name(site_id),
                "Fails over to": data.facility_name(fallback) if fallback else "—",
                "Status": "Stranded" if site_id in stranded else "OK",
            })
        if rows:
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        pairs = topology.diverse_pairs()
        if pairs:
            st.caption(
                "Geographically diverse POP pairs: "
                + ", ".join(f"{a} / {b}" for a, b in pairs)
            )
