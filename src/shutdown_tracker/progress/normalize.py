# shutdown_tracker/progress/normalize.py

from __future__ import annotations

import logging
import unicodedata
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from shutdown_tracker.config import (
    DEFAULT_AREA,
    DEFAULT_DISCIPLINE,
    DEFAULT_DURATION_HOURS,
    DEFAULT_OWNER,
    IMPORT_DURATION_HOURS,
    UNTITLED_ACTIVITY,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# CANONICAL COLUMNS
# ---------------------------------------------------------

DATE_COLUMNS = ["Planned Start", "Planned Finish", "Current Start", "Current Finish"]

ACTIVITY_COLUMNS = [
    "TaskID",
    "WBS",
    "Name",
    "Discipline",
    "Area",
    "Owner",
    "Duration",
    "Planned Start",
    "Planned Finish",
    "Current Start",
    "Current Finish",
    "PlannedPct",
    "ActualPct",
    "IsCritical",
    "ParentID",
    "IsGroup",
    "IsLeaf",
]

# Header variations seen in spreadsheet / extraction exports.
# Matched after accent stripping and lower-casing.
COLUMN_ALIASES: Dict[str, List[str]] = {
    "TaskID": ["taskid", "task id", "id"],
    "WBS": ["wbs", "edt"],
    "Name": ["name", "atividade", "tarefa", "activity", "task", "item"],
    "Discipline": ["discipline", "disciplina", "especialidade"],
    "Area": ["area", "setor", "location", "local"],
    "Owner": ["owner", "responsavel", "responsible", "executor", "quem"],
    "Duration": ["duration", "duracao", "duration (h)", "hours", "horas"],
    "Planned Start": [
        "planned start", "inicio previsto", "data inicio", "inicio",
        "start", "baseline start", "comeco",
    ],
    "Planned Finish": [
        "planned finish", "fim previsto", "termino", "finish", "fim",
        "end", "baseline finish", "conclusao",
    ],
    "Current Start": ["current start", "forecast start", "inicio atual", "inicio reprogramado"],
    "Current Finish": ["current finish", "forecast finish", "fim atual", "fim reprogramado"],
    "PlannedPct": [
        "plannedpct", "planned progress", "planned %", "% planejado",
        "planejado", "percentual planejado",
    ],
    "ActualPct": [
        "actualpct", "actual progress", "actual %", "% real", "realizado",
        "progresso", "% complete", "percentcomplete", "percentual real",
    ],
    "IsCritical": ["iscritical", "is critical", "critical", "critico", "caminho critico"],
    "ParentID": ["parentid", "parent id", "parent", "atividade pai", "pai"],
    "IsGroup": ["isgroup", "is group", "group", "summary", "resumo", "grupo"],
}

# Aliases shorter than this only match a header exactly
_MIN_SUBSTRING_ALIAS = 4
_EXACT_SCORE = 1000
_ID_TOKEN_SCORE = 500

_ID_TOKENS = {"id", "codigo", "code", "cod"}
_NOT_TASK_ID_TOKENS = {"wbs", "edt", "parent", "pai"}

DISCIPLINE_KEYWORDS = [
    ("Electrical", ["elet", "elec"]),
    ("Civil", ["civil"]),
    ("Instrumentation", ["instrum", "automa"]),
    ("Scaffolding", ["andai", "scaff"]),
    ("Painting", ["pintu", "paint"]),
    ("Mechanical", ["mec", "mech"]),
]

_TRUE_STRINGS = {"true", "yes", "y", "sim", "s", "x", "1"}


# ---------------------------------------------------------
# SMALL HELPERS
# ---------------------------------------------------------

def fold_text(text: Any) -> str:
    """Lower-case, accent-free, single-spaced version of a header or label."""
    s = unicodedata.normalize("NFD", str(text))
    s = "".join(ch for ch in s if unicodedata.category(ch) != "Mn")
    return " ".join(s.lower().replace("_", " ").split())


def to_utc(value: Any) -> pd.Timestamp:
    """Coerce an instant to a tz-aware UTC Timestamp (naive values are taken as UTC)."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    if value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, str) and value.strip() in ("", "nan", "None")


def _clean_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # "12.0" read back from a numeric spreadsheet column
        return str(int(value))
    return str(value).strip()


def _to_bool(value: Any) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return value != 0
    return fold_text(value) in _TRUE_STRINGS


def _round_half_up(values):
    return np.floor(np.asarray(values, dtype=float) + 0.5)


def classify_discipline(value: Any) -> str:
    """Map a free-text discipline to the closed discipline set."""
    if _is_blank(value):
        return DEFAULT_DISCIPLINE
    folded = fold_text(value)
    for label, keywords in DISCIPLINE_KEYWORDS:
        if folded == fold_text(label) or any(k in folded for k in keywords):
            return label
    return DEFAULT_DISCIPLINE


def _header_matches(folded: str) -> Dict[str, int]:
    """Canonical columns a folded header could stand for, with match scores."""
    found: Dict[str, int] = {}
    for canon, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if folded == alias:
                score = _EXACT_SCORE
            elif len(alias) >= _MIN_SUBSTRING_ALIAS and alias in folded:
                score = len(alias)
            else:
                continue
            found[canon] = max(found.get(canon, 0), score)

    # "Activity ID", "Codigo da Tarefa": an id token outranks the name aliases
    tokens = set(folded.split())
    if tokens & _ID_TOKENS and not tokens & _NOT_TASK_ID_TOKENS and set(found) <= {"Name", "TaskID"}:
        found["TaskID"] = max(found.get("TaskID", 0), _ID_TOKEN_SCORE)
    return found


def map_columns(columns: Iterable[Any]) -> Dict[Any, str]:
    """
    Build a rename map from raw headers to canonical column names.

    Canonical names are kept as-is. The remaining headers are scored
    against every canonical column (exact alias, then id token, then
    longest substring alias) and the best pairs are assigned first, so
    "Activity ID" / "Activity Name" resolve to TaskID / Name whatever
    their order. Each canonical column is assigned at most once;
    unmatched headers are left alone.
    """
    columns = list(columns)
    rename: Dict[Any, str] = {}
    taken = set()

    for col in columns:
        if col in COLUMN_ALIASES:
            rename[col] = col
            taken.add(col)

    candidates = []
    for position, col in enumerate(columns):
        if col in rename:
            continue
        for canon, score in _header_matches(fold_text(col)).items():
            candidates.append((-score, position, canon, col))

    for _, _, canon, col in sorted(candidates, key=lambda c: c[:2]):
        if col in rename or canon in taken:
            continue
        rename[col] = canon
        taken.add(canon)

    return rename


def _as_frame(data) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data.copy()
    if isinstance(data, (list, tuple)):
        return pd.DataFrame(list(data))
    raise TypeError(
        f"Activities must be a DataFrame or a list of records, got {type(data).__name__}"
    )


# ---------------------------------------------------------
# IMPORT-TIME BACKFILL
# ---------------------------------------------------------

def backfill_schedule(df: pd.DataFrame, now) -> pd.DataFrame:
    """
    Fill schedule gaps the way an import does, relative to ``now``.

    Expects coerced columns (dates parsed, Duration / PlannedPct numeric
    with NaN where missing):
      - missing Planned Start  -> now
      - missing Planned Finish -> start + Duration (or IMPORT_DURATION_HOURS)
      - missing Duration       -> span of the dates in whole hours; a zero
                                  span (milestone or summary row) gives 0
      - missing PlannedPct     -> 100 after finish, 0 before start,
                                  elapsed share of the span in between
    """
    df = df.copy()
    now = to_utc(now)

    df["Planned Start"] = df["Planned Start"].fillna(now)

    hours = df["Duration"].where(df["Duration"] > 0, IMPORT_DURATION_HOURS)
    fallback_end = df["Planned Start"] + pd.to_timedelta(hours, unit="h")
    df["Planned Finish"] = df["Planned Finish"].fillna(fallback_end)

    span = (df["Planned Finish"] - df["Planned Start"]) / pd.Timedelta(hours=1)
    derived = pd.Series(_round_half_up(span), index=df.index)
    df["Duration"] = df["Duration"].fillna(derived.where(derived >= 0))

    start = df["Current Start"].fillna(df["Planned Start"])
    end = df["Current Finish"].fillna(df["Planned Finish"])
    total = (end - start) / pd.Timedelta(milliseconds=1)
    elapsed = (now - start) / pd.Timedelta(milliseconds=1)

    ratio = np.where(total > 0, elapsed / total.where(total > 0, 1.0), 0.0)
    expected = np.where(
        now > end,
        100.0,
        np.where(now > start, _round_half_up(ratio * 100.0), 0.0),
    )
    df["PlannedPct"] = df["PlannedPct"].fillna(pd.Series(expected, index=df.index))

    return df


# ---------------------------------------------------------
# MAIN NORMALIZATION PASS
# ---------------------------------------------------------

def normalize_activities(data, now=None) -> pd.DataFrame:
    """
    Clean and normalize an activity table (DataFrame or list of records).

    Guarantees:
      - every column in ACTIVITY_COLUMNS exists
      - TaskID / Name / Area / Owner are non-empty strings
      - Discipline is one of config.DISCIPLINES
      - Duration is a float >= 0 (0 only for groups), missing -> 1 hour
      - PlannedPct / ActualPct are floats clipped to 0-100, missing -> 0
      - date columns are tz-aware UTC (or NaT), Current defaults to Planned
      - IsGroup is True for explicit groups, supplied zero durations
        (or zero date spans when backfilled) and any activity
        referenced as a parent

    Never raises for malformed values; every substitution is counted and
    logged. If ``now`` is given, the import backfill (backfill_schedule)
    runs before defaults are applied.
    """
    df = _as_frame(data)
    df.columns = [c.strip() if isinstance(c, str) else c for c in df.columns]
    df = df.rename(columns=map_columns(df.columns))
    df = df.reset_index(drop=True)

    n = len(df)
    supplied = set(df.columns)
    defaulted: Dict[str, int] = {}

    def text_column(col, fallback):
        raw = df[col] if col in df.columns else pd.Series([None] * n, index=df.index, dtype=object)
        cleaned = raw.map(_clean_text)
        missing = cleaned.isna()
        if col in supplied and missing.any():
            defaulted[col] = int(missing.sum())
        return cleaned.where(~missing, fallback).astype(object)

    def numeric_column(col):
        if col not in df.columns:
            return pd.Series(np.nan, index=df.index, dtype=float)
        return pd.to_numeric(df[col], errors="coerce").astype(float)

    # ---- identity & labels ----
    position = pd.Series(range(1, n + 1), index=df.index)
    df["TaskID"] = text_column("TaskID", "TASK-" + position.astype(str))
    df["WBS"] = text_column("WBS", position.astype(str))
    df["Name"] = text_column("Name", UNTITLED_ACTIVITY)
    df["Area"] = text_column("Area", DEFAULT_AREA)
    df["Owner"] = text_column("Owner", DEFAULT_OWNER)

    if "Discipline" in df.columns:
        df["Discipline"] = df["Discipline"].map(classify_discipline)
    else:
        df["Discipline"] = DEFAULT_DISCIPLINE

    # ---- dates ----
    for col in DATE_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)
        else:
            df[col] = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns, UTC]")

    # ---- numbers ----
    raw_duration = numeric_column("Duration")
    zero_duration = raw_duration == 0
    df["Duration"] = raw_duration.where(raw_duration > 0)
    df["PlannedPct"] = numeric_column("PlannedPct")
    df["ActualPct"] = numeric_column("ActualPct")

    if now is not None:
        df = backfill_schedule(df, now)
        # zero-length imports are summary rows
        zero_duration = zero_duration | (df["Duration"] == 0)

    df["Current Start"] = df["Current Start"].fillna(df["Planned Start"])
    df["Current Finish"] = df["Current Finish"].fillna(df["Planned Finish"])

    for col in ["PlannedPct", "ActualPct"]:
        missing = df[col].isna()
        if col in supplied and missing.any():
            defaulted[col] = int(missing.sum())
        df[col] = df[col].fillna(0.0).clip(lower=0.0, upper=100.0)

    # ---- flags & structure ----
    df["IsCritical"] = df["IsCritical"].map(_to_bool) if "IsCritical" in df.columns else False
    parents = df["ParentID"] if "ParentID" in df.columns else [None] * n
    df["ParentID"] = pd.Series([_clean_text(p) for p in parents], index=df.index, dtype=object)

    explicit_group = df["IsGroup"].map(_to_bool) if "IsGroup" in df.columns else False
    linked = df["ParentID"].notna() & (df["ParentID"] != df["TaskID"])
    has_children = df["TaskID"].isin(set(df.loc[linked, "ParentID"]))
    df["IsGroup"] = (explicit_group | zero_duration | has_children).astype(bool)
    df["IsLeaf"] = ~df["IsGroup"]

    # Duration: groups carry none of their own, everything else gets a weight
    missing_duration = df["Duration"].isna() & ~zero_duration
    if "Duration" in supplied and missing_duration.any():
        defaulted["Duration"] = int(missing_duration.sum())
    df["Duration"] = df["Duration"].fillna(DEFAULT_DURATION_HOURS)
    df.loc[zero_duration, "Duration"] = 0.0

    if defaulted:
        logger.warning(
            "Defaulted malformed or missing activity fields: %s",
            ", ".join(f"{col}={count}" for col, count in sorted(defaulted.items())),
        )

    extras = [c for c in df.columns if c not in ACTIVITY_COLUMNS]
    return df[ACTIVITY_COLUMNS + extras]


def leaf_activities(df: pd.DataFrame) -> pd.DataFrame:
    """Rows that count toward weighted totals (group containers removed)."""
    if "IsGroup" not in df.columns:
        return df
    return df[~df["IsGroup"].astype(bool)]
