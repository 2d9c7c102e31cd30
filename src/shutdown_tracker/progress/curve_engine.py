# shutdown_tracker/progress/curve_engine.py

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from shutdown_tracker.config import CURVE_SAMPLES
from shutdown_tracker.progress.aggregator import activity_weights
from shutdown_tracker.progress.normalize import leaf_activities, normalize_activities, to_utc

logger = logging.getLogger(__name__)

CURVE_COLUMNS = ["Time", "Planned", "Real"]

_MS = pd.Timedelta(milliseconds=1)


def _empty_curve() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Time": pd.Series([], dtype="datetime64[ns, UTC]"),
            "Planned": pd.Series([], dtype=float),
            "Real": pd.Series([], dtype=float),
        }
    )


def _curve_activities(activities) -> pd.DataFrame:
    df = leaf_activities(normalize_activities(activities))
    df = df[df["Duration"] > 0]

    undated = df["Current Start"].isna() | df["Current Finish"].isna()
    if undated.any():
        logger.debug("S-curve skips %d activities without dates", int(undated.sum()))
    return df[~undated]


def compute_curve(activities, now, samples: int = CURVE_SAMPLES) -> pd.DataFrame:
    """
    Cumulative planned vs real progress sampled over the project span.

    Returns one row per sample with:
      - Time     (UTC Timestamp, evenly spaced from earliest current start
                  to latest current finish, both included)
      - Planned  (% complete if every activity progressed linearly
                  between its current start and finish)
      - Real     (% complete estimate; NaN for samples after ``now``)

    Real values before ``now`` are an approximation: no progress history
    is kept, so each activity is assumed to have progressed at a constant
    rate from its start up to ``now`` (actual % / elapsed time), capped at
    its current actual %. Bursty or stalled work is misrepresented.

    Empty input, or a span that does not move forward, gives an empty frame.
    """
    df = _curve_activities(activities)
    if df.empty or samples < 2:
        return _empty_curve()

    now = to_utc(now)
    min_start = df["Current Start"].min()
    max_end = df["Current Finish"].max()

    if max_end <= min_start:
        return _empty_curve()

    # Millisecond offsets from the project start
    span = (max_end - min_start) / _MS
    starts = ((df["Current Start"] - min_start) / _MS).to_numpy(dtype=float)
    ends = ((df["Current Finish"] - min_start) / _MS).to_numpy(dtype=float)
    now_ms = (now - min_start) / _MS

    weights = activity_weights(df).to_numpy(dtype=float)
    weights = weights / weights.sum()
    actual = df["ActualPct"].to_numpy(dtype=float)

    t = span * np.arange(samples, dtype=float) / (samples - 1)
    tt = t[:, None]
    durations = ends - starts

    # Planned: 0 before start, 100 after finish, linear in between
    safe_dur = np.where(durations > 0, durations, 1.0)
    ramp = np.where((tt > starts) & (durations > 0), (tt - starts) / safe_dur * 100.0, 0.0)
    planned_contrib = np.where(tt >= ends, 100.0, ramp)
    planned = (planned_contrib * weights).sum(axis=1)

    # Real: constant-rate back-projection from the current actual %
    rate = actual / np.maximum(1.0, now_ms - starts)
    projected = np.minimum(actual, np.floor(rate * (tt - starts) + 0.5))
    real_contrib = np.where(tt >= now_ms, actual, np.where(tt > starts, projected, 0.0))
    real = (real_contrib * weights).sum(axis=1)
    real = np.where(t <= now_ms, np.round(real, 1), np.nan)

    times = min_start + pd.to_timedelta(t, unit="ms")

    return pd.DataFrame(
        {
            "Time": times,
            "Planned": np.round(planned, 1),
            "Real": real,
        },
        columns=CURVE_COLUMNS,
    )
