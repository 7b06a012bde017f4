"""
POP Planner — Streamlit entry point.

Thin presentation layer over pop_engine. The sidebar widgets only build a
RequirementsProfile; every decision comes from optimize_network(). The
page renders the result:

  1. Summary metrics (active POPs, sites, extended-range links, skipped)
  2. Coverage map — sites linked to their nearest active POP
  3. Active POP table with the reason each one was selected
  4. Suitability heat map (site x POP score) + per-site breakdown
  5. Exact minimum-cover baseline for comparison

Run: streamlit run app.py
"""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from pop_engine.config import MAX_THRESHOLD_MILES, MIN_THRESHOLD_MILES, setup_logging
from pop_engine.data_loader import NetworkData
from pop_engine.heatmap import heatmap_matrix, scores_frame
from pop_engine.ontology import (
    Budget,
    GeoPoint,
    LatencySensitivity,
    PrimaryGoal,
    Redundancy,
    RequirementsProfile,
)
from pop_engine.optimizer import solve_min_cover
from pop_engine.pipeline import optimize_network, plan_cache_key
from pop_engine.topology import NetworkTopology


@st.cache_resource
def load_data():
    setup_logging()
    return NetworkData.from_csv()


@st.cache_data
def run_plan(key, _data, _requirements):
    # only key (plan_cache_key) is hashed
    return optimize_network(_data.sites, _data.facilities, _requirements)


st.set_page_config(page_title="POP Planner", layout="wide")

data = load_data()

# ── Sidebar: Requirements ────────────────────────────────────────────────
with st.sidebar:
    st.header("Requirements")

    goal = st.selectbox("Primary goal", [g.value for g in PrimaryGoal])
    budget = st.selectbox("Budget", [b.value for b in Budget], index=1)
    redundancy = st.selectbox("Redundancy", [r.value for r in Redundancy])
    latency = st.selectbox("Latency sensitivity", [ls.value for ls in LatencySensitivity])
    threshold = st.slider(
        "Distance threshold (miles)",
        int(MIN_THRESHOLD_MILES), int(MAX_THRESHOLD_MILES), 1000, 50,
        help="Sites farther than this from their POP are shown as extended range",
    )
    show_all = st.toggle("Show all candidate POPs", value=False)

requirements = RequirementsProfile(
    primary_goal=goal,
    budget=budget,
    redundancy=redundancy,
    latency_sensitivity=latency,
    distance_threshold_miles=float(threshold),
)
st.session_state["requirements"] = requirements

key = plan_cache_key(data.sites, data.facilities, requirements)
plan = run_plan(key, data, requirements)
active = plan.selection.active_facility_ids
facilities = {f.id: f for f in data.facilities}
sites = {s.id: s for s in data.sites}

# ── Summary ──────────────────────────────────────────────────────────────
st.title("POP Planner")
st.caption("Which interconnection facilities should this network use?")

extended = [a for a in plan.active_assignments if a.extended_range]
col1, col2, col3, col4 = st.columns(4)
col1.metric("Active POPs", f"{len(active)} / {len(data.facilities)}")
col2.metric("Sites", str(len(data.sites)))
col3.metric("Extended range", str(len(extended)))
col4.metric("Skipped (no coordinates)", str(len(plan.skipped_site_ids)))

if plan.skipped_site_ids:
    st.warning(
        "Sites without usable coordinates were left out of distance-based steps: "
        + ", ".join(data.site_name(sid) for sid in plan.skipped_site_ids)
    )

st.divider()

# ── Coverage Map ─────────────────────────────────────────────────────────
st.subheader("Coverage Map")
map_fig = go.Figure()

for a in plan.active_assignments:
    s, f = sites[a.site_id].location, facilities[a.facility_id].location
    if not isinstance(s, GeoPoint) or not isinstance(f, GeoPoint):
        continue
    map_fig.add_trace(go.Scattergeo(
        lat=[s.latitude, f.latitude], lon=[s.longitude, f.longitude],
        mode="lines",
        line=dict(width=1.5, color="orange" if a.extended_range else "green",
                  dash="dash" if a.extended_range else "solid"),
        hoverinfo="skip", showlegend=False,
    ))

located_sites = [s for s in data.sites if isinstance(s.location, GeoPoint) and s.has_location]
map_fig.add_trace(go.Scattergeo(
    lat=[s.location.latitude for s in located_sites],
    lon=[s.location.longitude for s in located_sites],
    mode="markers",
    marker=dict(size=7, color="seagreen", symbol="circle"),
    text=[f"<b>{s.name}</b><br>{s.category.value}" for s in located_sites],
    hoverinfo="text", name="Sites",
))

shown = [
    f for f in data.facilities
    if isinstance(f.location, GeoPoint) and f.has_location and (show_all or f.id in active)
]
map_fig.add_trace(go.Scattergeo(
    lat=[f.location.latitude for f in shown],
    lon=[f.location.longitude for f in shown],
    mode="markers",
    marker=dict(
        size=[13 if f.id in active else 8 for f in shown],
        color=["royalblue" if f.id in active else "gray" for f in shown],
        symbol="square",
    ),
    text=[f"<b>{f.name}</b>" + (" (active)" if f.id in active else "") for f in shown],
    hoverinfo="text", name="POPs",
))

map_fig.update_layout(
    geo=dict(
        scope="usa",
        showland=True, landcolor="rgb(243, 243, 243)",
        showlakes=True, lakecolor="rgb(230, 240, 250)",
    ),
    height=450,
    margin=dict(l=0, r=0, t=10, b=0),
    legend=dict(yanchor="top", y=0.99, xanchor="left", x=0.01,
                bgcolor="rgba(255,255,255,0.8)"),
)
st.plotly_chart(map_fig, use_container_width=True)

# ── Active POPs ──────────────────────────────────────────────────────────
st.subheader("Active POPs")
topology = NetworkTopology(plan, data.sites, data.facilities)
load = topology.facility_load()
pop_rows = []
for fid in sorted(active):
    pop_rows.append({
        "POP": data.facility_name(fid),
        "Reason": plan.selection.reasons[fid].value,
        "Sites": load.get(fid, 0),
        "Stranded if down": len(topology.impact_analysis(fid)),
    })
st.dataframe(pd.DataFrame(pop_rows), use_container_width=True, hide_index=True)

with st.expander("Regions (west to east)"):
    for cluster in plan.regions:
        st.markdown(
            f"**{cluster.region_name}** — "
            + ", ".join(data.site_name(sid) for sid in cluster.site_ids)
        )

st.divider()

# ── Heat Map ─────────────────────────────────────────────────────────────
st.subheader("Suitability Heat Map")
st.caption("0-100 score per site and POP: distance, cost, performance, redundancy, onramp")

matrix = heatmap_matrix(plan.scores)
if not matrix.empty:
    heat = go.Figure(go.Heatmap(
        z=matrix.values,
        x=[data.facility_name(fid) for fid in matrix.columns],
        y=[data.site_name(sid) for sid in matrix.index],
        colorscale="Viridis", zmin=0, zmax=100,
        hovertemplate="%{y} → %{x}: %{z:.1f}<extra></extra>",
    ))
    heat.update_layout(height=max(350, 22 * len(matrix.index)), margin=dict(l=10, r=10, t=10, b=10))
    st.plotly_chart(heat, use_container_width=True)

    site_choice = st.selectbox(
        "Score breakdown for site", list(matrix.index),
        format_func=data.site_name,
    )
    detail = scores_frame(plan.scores_for(site_choice))
    detail["facility_id"] = detail["facility_id"].map(data.facility_name)
    st.dataframe(detail.drop(columns=["site_id"]).round(1), use_container_width=True, hide_index=True)
else:
    st.info("No scores: add sites with coordinates and at least one POP.")

# ── Baseline ─────────────────────────────────────────────────────────────
with st.expander("Exact minimum cover (baseline)"):
    baseline = solve_min_cover(data.sites, data.facilities, plan.threshold_miles)
    st.markdown(f"Solver status: **{baseline.status}**")
    if baseline.active_facility_ids:
        st.markdown(
            f"{len(baseline.active_facility_ids)} POP(s) reach every reachable site: "
            + ", ".join(data.facility_name(fid) for fid in sorted(baseline.active_facility_ids))
        )
    if baseline.uncoverable_site_ids:
        st.markdown(
            "No POP within threshold for: "
            + ", ".join(data.site_name(sid) for sid in baseline.uncoverable_site_ids)
        )
