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

from shutdown_tracker.progress.hierarchy import build_hierarchy, hierarchy_frame, rollup_progress

st.set_page_config(
    page_title="Activity Tree",
    layout="wide",
)

st.title("🌳 Activity Tree")
st.caption("Groups show the duration-weighted progress of the activities below them.")

df_raw = st.session_state.get("schedule_df", None)

if df_raw is None:
    st.warning("No schedule loaded. Upload one on the Home/Menu page first.")
    st.stop()

try:
    roots = rollup_progress(build_hierarchy(df_raw))
except Exception as e:
    st.error(f"Error building the activity tree: {e}")
    st.stop()

tree = hierarchy_frame(roots)

max_level = int(tree["Level"].max()) if not tree.empty else 0
if max_level > 0:
    depth = st.sidebar.slider("Show levels", min_value=0, max_value=max_level, value=max_level)
else:
    depth = 0
groups_only = st.sidebar.checkbox("Groups only", value=False)

view = tree[tree["Level"] <= depth]
if groups_only:
    view = view[view["IsGroup"]]

view = view.assign(Name=view["Level"].map(lambda lvl: "\u2003\u2003" * lvl) + view["Name"])

st.dataframe(
    view[["TaskID", "Name", "Duration", "PlannedPct", "ActualPct"]],
    column_config={
        "PlannedPct": st.column_config.ProgressColumn("Planned %", min_value=0, max_value=100, format="%.1f"),
        "ActualPct": st.column_config.ProgressColumn("Actual %", min_value=0, max_value=100, format="%.1f"),
    },
    hide_index=True,
    use_container_width=True,
)
