# shutdown_tracker/progress/aggregator.py

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Tuple

import pandas as pd

from shutdown_tracker.config import (
    AT_RISK_SPI,
    CRITICAL_SPI,
    DEFAULT_DURATION_HOURS,
    DISCIPLINES,
    STATUS_AT_RISK,
    STATUS_CRITICAL,
    STATUS_ON_TRACK,
)
from shutdown_tracker.progress.normalize import leaf_activities, normalize_activities, to_utc


@dataclass
class ProjectStats:
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    delayed_tasks: int = 0
    planned_physical: float = 0.0
    actual_physical: float = 0.0
    overall_spi: float = 0.0
    global_status: str = STATUS_ON_TRACK
    deviation: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def activity_weights(df: pd.DataFrame) -> pd.Series:
    """Duration in hours, with DEFAULT_DURATION_HOURS for missing or non-positive values."""
    dur = pd.to_numeric(df["Duration"], errors="coerce")
    return dur.where(dur > 0, DEFAULT_DURATION_HOURS)


def weighted_progress(df: pd.DataFrame) -> Tuple[float, float]:
    """
    Duration-weighted (planned, actual) percent complete of the given rows.

    Callers pass leaf rows only; (0.0, 0.0) for an empty frame.
    """
    if df.empty:
        return 0.0, 0.0

    weights = activity_weights(df)
    share = weights / weights.sum()

    planned = float((df["PlannedPct"] * share).sum())
    actual = float((df["ActualPct"] * share).sum())
    return planned, actual


def classify_spi(spi: float) -> str:
    """Strict comparisons: an SPI of exactly CRITICAL_SPI is "At Risk"."""
    if spi < CRITICAL_SPI:
        return STATUS_CRITICAL
    if spi < AT_RISK_SPI:
        return STATUS_AT_RISK
    return STATUS_ON_TRACK


def compute_stats(activities, now) -> ProjectStats:
    """
    Roll a list of activities up into project-level progress KPIs.

    Group containers are excluded so nothing is counted twice. ``now`` is
    only used to decide which unfinished activities are past their
    current finish (delayed).

    An empty list gives all-zero stats with an "On Track" status.
    """
    df = leaf_activities(normalize_activities(activities))

    if df.empty:
        return ProjectStats()

    now = to_utc(now)
    actual_pct = df["ActualPct"]

    planned, actual = weighted_progress(df)

    # Zero planned progress (event not started) -> SPI equals actual progress
    spi = actual / (planned or 1)

    completed = int((actual_pct == 100).sum())
    in_progress = int(((actual_pct > 0) & (actual_pct < 100)).sum())
    delayed = int(((df["Current Finish"] < now) & (actual_pct < 100)).sum())

    return ProjectStats(
        total_tasks=int(len(df)),
        completed_tasks=completed,
        in_progress_tasks=in_progress,
        delayed_tasks=delayed,
        planned_physical=round(planned, 1),
        actual_physical=round(actual, 1),
        overall_spi=round(spi, 2),
        global_status=classify_spi(spi),
        deviation=round(actual - planned, 1),
    )


def compute_discipline_progress(activities) -> pd.DataFrame:
    """
    Weighted planned / real progress per discipline.

    Returns a DataFrame with Discipline, Tasks, Planned, Real; only
    disciplines that have leaf activities appear, in DISCIPLINES order.
    """
    df = leaf_activities(normalize_activities(activities))

    rows = []
    for discipline in DISCIPLINES:
        part = df[df["Discipline"] == discipline]
        if part.empty:
            continue
        planned, actual = weighted_progress(part)
        rows.append(
            {
                "Discipline": discipline,
                "Tasks": int(len(part)),
                "Planned": round(planned, 1),
                "Real": round(actual, 1),
            }
        )

    return pd.DataFrame(rows, columns=["Discipline", "Tasks", "Planned", "Real"])
