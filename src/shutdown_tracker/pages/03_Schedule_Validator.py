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

from shutdown_tracker.validation.schedule_validator import validate_schedule

st.set_page_config(
    page_title="Schedule Validator",
    layout="wide"
)

st.title("🔍 Schedule Validator")
st.caption("See what the importer had to guess or repair in the uploaded schedule.")

df_raw = st.session_state.get("schedule_raw", None)

if df_raw is None:
    st.warning("No schedule loaded. Upload one on the Home/Menu page first.")
    st.stop()

# Run validator
try:
    issues = pd.DataFrame(
        validate_schedule(df_raw),
        columns=["TaskID", "Name", "Severity", "IssueType", "Description", "SuggestedFix"],
    )
except Exception as e:
    st.error(f"Error while running validator: {e}")
    st.stop()

st.success("Validation completed.")

# Split: critical/errors vs. warnings
critical = issues[issues["Severity"].isin(["critical", "error"])]
warnings = issues[issues["Severity"] == "warning"]

# Summary
col1, col2 = st.columns(2)
col1.metric("Critical Issues / Errors", len(critical))
col2.metric("Warnings", len(warnings))

st.divider()

st.subheader("❌ Critical Issues / Errors")
if critical.empty:
    st.success("No critical issues found.")
else:
    st.error("The dashboard repaired these, but the numbers rest on guesses until they are fixed.")
    st.dataframe(critical)

st.subheader("⚠️ Warnings")
if warnings.empty:
    st.success("No warnings.")
else:
    st.warning("Defaults were applied; worth cleaning up in the source schedule.")
    st.dataframe(warnings)

st.divider()

csv_export = issues.to_csv(index=False).encode("utf-8")
st.download_button(
    "Download Full Validation Report (CSV)",
    data=csv_export,
    file_name="schedule_validation_results.csv",
    mime="text/csv",
)
