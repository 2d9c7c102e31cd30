from shutdown_tracker.progress.normalize import normalize_activities, backfill_schedule, to_utc
from shutdown_tracker.progress.aggregator import (
    ProjectStats,
    classify_spi,
    compute_discipline_progress,
    compute_stats,
)
from shutdown_tracker.progress.curve_engine import compute_curve
from shutdown_tracker.progress.hierarchy import (
    ActivityNode,
    build_hierarchy,
    flatten,
    hierarchy_frame,
    rollup_progress,
)

__all__ = [
    "ActivityNode",
    "ProjectStats",
    "backfill_schedule",
    "build_hierarchy",
    "classify_spi",
    "compute_curve",
    "compute_discipline_progress",
    "compute_stats",
    "flatten",
    "hierarchy_frame",
    "normalize_activities",
    "rollup_progress",
    "to_utc",
]
