import sys
import os

# -----------------------------------------------------------
# Make sure "shutdown_tracker" package is importable
# -----------------------------------------------------------
THIS_FILE = os.path.abspath(__file__)
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../../"))

if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from shutdown_tracker.config import CURVE_LABEL_FORMAT, STATUS_AT_RISK, STATUS_ON_TRACK
from shutdown_tracker.progress.aggregator import compute_discipline_progress, compute_stats
from shutdown_tracker.progress.analytics_engine import (
    critical_delays,
    ensure_dashboard_fields,
    status_counts,
)
from shutdown_tracker.progress.curve_engine import compute_curve

# -----------------------------------------------------------
# Visual constants
# -----------------------------------------------------------
FLAT_COLORS = {
    "blue": "#1E88E5",
    "green": "#43A047",
    "amber": "#FB8C00",
    "red": "#E53935",
    "grey": "#757575",
}

STATUS_BADGES = {
    STATUS_ON_TRACK: "✅",
    STATUS_AT_RISK: "🟡",
}

st.set_page_config(
    page_title="Shutdown Dashboard",
    layout="wide",
)

st.title("📊 Shutdown Dashboard")

# Use the central session schedule
df_raw = st.session_state.get("schedule_df", None)

if df_raw is None:
    st.warning("No schedule loaded. Upload one on the Home/Menu page first.")
    st.stop()

now = pd.Timestamp.now(tz="UTC")

# -----------------------------------------------------------
# Run progress engine
# -----------------------------------------------------------
try:
    stats = compute_stats(df_raw, now)
    curve = compute_curve(df_raw, now)
    by_discipline = compute_discipline_progress(df_raw)
    df = ensure_dashboard_fields(df_raw, now)
    late_critical = critical_delays(df_raw)
except Exception as e:
    st.error(f"Error computing progress: {e}")
    st.stop()

# -----------------------------------------------------------
# 1. KPI strip
# -----------------------------------------------------------
badge = STATUS_BADGES.get(stats.global_status, "🔴")

c1, c2, c3, c4, c5 = st.columns(5)

with c1:
    st.metric("Activities", stats.total_tasks)
    st.caption(f"{stats.completed_tasks} completed · {stats.in_progress_tasks} in progress")

with c2:
    st.metric("Actual progress", f"{stats.actual_physical}%", delta=f"{stats.deviation:+.1f}%")

with c3:
    st.metric("Planned progress", f"{stats.planned_physical}%")

with c4:
    st.metric("Project SPI", f"{stats.overall_spi:.2f}")

with c5:
    st.metric("Delayed activities", stats.delayed_tasks)

st.markdown(f"### {badge} {stats.global_status}")

st.divider()

# -----------------------------------------------------------
# 2. S-curve
# -----------------------------------------------------------
st.markdown("## Physical Progress S-Curve")

if curve.empty:
    st.info("Not enough dated activities to draw the curve.")
else:
    labels = curve["Time"].dt.strftime(CURVE_LABEL_FORMAT)

    fig_curve = go.Figure()
    fig_curve.add_trace(
        go.Scatter(
            x=labels,
            y=curve["Planned"],
            name="Planned",
            mode="lines",
            line=dict(color=FLAT_COLORS["grey"], dash="dash", width=2),
        )
    )
    fig_curve.add_trace(
        go.Scatter(
            x=labels,
            y=curve["Real"],
            name="Real (estimated)",
            mode="lines",
            fill="tozeroy",
            line=dict(color=FLAT_COLORS["blue"], width=4),
        )
    )
    fig_curve.update_layout(
        yaxis=dict(range=[0, 100], ticksuffix="%"),
        margin=dict(l=20, r=20, t=40, b=20),
    )
    st.plotly_chart(fig_curve, use_container_width=True)
    st.caption(
        "Real values before now are back-projected at a constant rate from each "
        "activity's current progress; there is no progress history."
    )

st.divider()

# -----------------------------------------------------------
# 3. Disciplines, status, critical delays
# -----------------------------------------------------------
col_a, col_b = st.columns([3, 2])

with col_a:
    st.subheader("Progress by discipline")

    if by_discipline.empty:
        st.info("No activities with a discipline.")
    else:
        melted = by_discipline.melt(
            id_vars=["Discipline"],
            value_vars=["Planned", "Real"],
            var_name="Series",
            value_name="Percent",
        )
        fig_disc = px.bar(
            melted,
            x="Percent",
            y="Discipline",
            color="Series",
            barmode="group",
            orientation="h",
            color_discrete_map={"Planned": FLAT_COLORS["grey"], "Real": FLAT_COLORS["blue"]},
            labels={"Percent": "% complete"},
        )
        fig_disc.update_layout(margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(fig_disc, use_container_width=True)

with col_b:
    st.subheader("Status distribution")

    counts = status_counts(df)
    counts = counts[counts["Tasks"] > 0]

    if counts.empty:
        st.info("No activities to classify.")
    else:
        fig_pie = px.pie(
            counts,
            names="Status",
            values="Tasks",
            hole=0.45,
            color="Status",
            color_discrete_map={
                "Completed": FLAT_COLORS["green"],
                "In Progress": FLAT_COLORS["blue"],
                "Delayed": FLAT_COLORS["red"],
                "Not Started": FLAT_COLORS["grey"],
            },
        )
        fig_pie.update_traces(textinfo="percent+label")
        fig_pie.update_layout(margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(fig_pie, use_container_width=True)

st.markdown("### Critical path activities behind plan")

if late_critical.empty:
    st.success("No critical activity is behind its planned progress.")
else:
    st.dataframe(
        late_critical[["TaskID", "Name", "Area", "Owner", "PlannedPct", "ActualPct", "Current Finish"]]
    )

with st.expander("Nerd view: full activity dataframe"):
    st.dataframe(df)
