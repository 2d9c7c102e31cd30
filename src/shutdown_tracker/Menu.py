import os, sys

# Absolute path to this file
THIS_FILE = os.path.abspath(__file__)

# Go up TWO directories:
#   Menu.py → shutdown_tracker/ → src/
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../"))

# Ensure src folder is on PYTHONPATH
if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

import logging

import streamlit as st
import pandas as pd

from shutdown_tracker.config import LOG_FORMAT, LOG_LEVEL
from shutdown_tracker.progress.normalize import normalize_activities

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Shutdown Progress Tracker", layout="wide")

st.title("🏭 Shutdown Progress Tracker")

st.markdown("""
Upload the shutdown schedule here once: the dashboard, activity tree and
validator pages all use it automatically.
""")

# Initialize session storage
if "schedule_df" not in st.session_state:
    st.session_state["schedule_df"] = None
if "schedule_raw" not in st.session_state:
    st.session_state["schedule_raw"] = None
if "schedule_name" not in st.session_state:
    st.session_state["schedule_name"] = None

uploaded = st.file_uploader("Upload Schedule CSV", type=["csv"])

backfill = st.checkbox(
    "Fill missing dates and planned % from the current time",
    value=True,
    help="Activities without a planned % get the share of their window already elapsed.",
)

if uploaded:
    try:
        df_raw = pd.read_csv(uploaded)
        now = pd.Timestamp.now(tz="UTC")

        df_clean = normalize_activities(df_raw, now=now if backfill else None)

        st.session_state["schedule_raw"] = df_raw
        st.session_state["schedule_df"] = df_clean
        st.session_state["schedule_name"] = uploaded.name

        logger.info("Loaded schedule %s with %d activities", uploaded.name, len(df_clean))
        st.success(f"Schedule '{uploaded.name}' loaded successfully!")

    except Exception as e:
        logger.exception("Failed to load schedule %s", uploaded.name)
        st.error(f"Error loading schedule: {e}")

if st.session_state["schedule_df"] is not None:
    df = st.session_state["schedule_df"]
    c1, c2, c3 = st.columns(3)
    c1.metric("Activities", len(df))
    c2.metric("Groups", int(df["IsGroup"].sum()))
    c3.metric("Critical", int(df["IsCritical"].astype(bool).sum()))

    with st.expander("Preview normalized schedule"):
        st.dataframe(df.head(50))
