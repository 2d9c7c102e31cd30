# shutdown_tracker/progress/analytics_engine.py

from __future__ import annotations

import numpy as np
import pandas as pd

from shutdown_tracker.config import CRITICAL_DELAY_LIMIT
from shutdown_tracker.progress.normalize import leaf_activities, normalize_activities, to_utc


TASK_STATUSES = ["Completed", "In Progress", "Delayed", "Not Started"]


def classify_task_status(df: pd.DataFrame, now) -> pd.Series:
    """
    Per-activity status label:
      - Completed    (ActualPct == 100)
      - In Progress  (ActualPct > 0)
      - Delayed      (not started and past Current Finish)
      - Not Started
    Checked in that order, so a started activity past its finish still
    reads "In Progress".
    """
    now = to_utc(now)
    actual = pd.to_numeric(df["ActualPct"], errors="coerce").fillna(0.0)
    late = (df["Current Finish"] < now) & (actual < 100)

    status = np.select(
        [actual == 100, actual > 0, late],
        ["Completed", "In Progress", "Delayed"],
        default="Not Started",
    )
    return pd.Series(status, index=df.index, dtype=object)


def add_slippage_hours(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add 'SlippageHours': how far Current Finish has moved past Planned
    Finish, in hours (never negative, 0 when a date is missing).
    """
    df = df.copy()
    slip = (df["Current Finish"] - df["Planned Finish"]) / pd.Timedelta(hours=1)
    df["SlippageHours"] = slip.fillna(0.0).clip(lower=0.0)
    return df


def ensure_dashboard_fields(activities, now) -> pd.DataFrame:
    """
    Normalized activity table with the per-row fields the dashboard pages
    show next to the KPIs:
      - Status         (see classify_task_status)
      - SlippageHours  (see add_slippage_hours)
      - ProgressGap    (ActualPct - PlannedPct)
    """
    df = normalize_activities(activities)
    df = add_slippage_hours(df)
    df["Status"] = classify_task_status(df, now)
    df["ProgressGap"] = df["ActualPct"] - df["PlannedPct"]
    return df


def critical_delays(activities, limit: int = CRITICAL_DELAY_LIMIT) -> pd.DataFrame:
    """
    Critical-path activities running behind plan (ActualPct < PlannedPct),
    the first ``limit`` in input order.
    """
    df = leaf_activities(normalize_activities(activities))
    behind = df[df["IsCritical"].astype(bool) & (df["ActualPct"] < df["PlannedPct"])]
    return behind.head(limit).copy()


def status_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Leaf activities per status, every status listed (zero counts included)."""
    leaf = leaf_activities(df)
    counts = leaf["Status"].value_counts().reindex(TASK_STATUSES, fill_value=0)
    return counts.rename_axis("Status").reset_index(name="Tasks")
