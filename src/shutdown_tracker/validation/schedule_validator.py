import pandas as pd

from shutdown_tracker.config import UNTITLED_ACTIVITY
from shutdown_tracker.progress.normalize import DATE_COLUMNS, map_columns, normalize_activities


# ------------------------------------------------------------------
# Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion):
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


def _raw_frame(data):
    df = data.copy() if isinstance(data, pd.DataFrame) else pd.DataFrame(list(data))
    df.columns = [c.strip() if isinstance(c, str) else c for c in df.columns]
    return df.rename(columns=map_columns(df.columns)).reset_index(drop=True)


def _cycle_members(df):
    parent = {
        tid: pid
        for tid, pid in zip(df["TaskID"], df["ParentID"])
        if pid is not None and pid != tid
    }
    in_cycle = set()
    for start in parent:
        seen = []
        node = start
        while node in parent and node not in seen:
            seen.append(node)
            node = parent[node]
        if node in seen:
            in_cycle.update(seen[seen.index(node):])
    return in_cycle


# ------------------------------------------------------------------
# MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_schedule(data):
    """
    Report problems in an imported activity table.

    Nothing here blocks the dashboard: the engine defaults or repairs
    every case listed. The report tells the planner what was guessed.
    """
    issues = []
    raw = _raw_frame(data)
    df = normalize_activities(raw)

    if df.empty:
        issues.append(make_issue(
            "N/A", "N/A", "critical", "EmptySchedule",
            "The schedule has no activities.",
            "Check that the first sheet of the export holds the activity list."
        ))
        return issues

    # ------------------------------------------------------------------
    # 1. Identity
    # ------------------------------------------------------------------
    dups = df[df["TaskID"].duplicated()]["TaskID"].unique().tolist()
    if dups:
        issues.append(make_issue(
            ", ".join(map(str, dups)), "",
            "critical", "DuplicateTaskID",
            f"Duplicate TaskIDs detected: {dups}",
            "Give every activity a unique id; children attach to the first duplicate."
        ))

    for _, row in df[df["Name"] == UNTITLED_ACTIVITY].iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "warning", "MissingName",
            "Activity has no name.",
            "Fill in the activity description in the source schedule."
        ))

    # ------------------------------------------------------------------
    # 2. Durations & progress
    # ------------------------------------------------------------------
    if "Duration" in raw.columns:
        dur = pd.to_numeric(raw["Duration"], errors="coerce")
        for idx in raw.index[(dur < 0).to_numpy()]:
            issues.append(make_issue(
                df.at[idx, "TaskID"], df.at[idx, "Name"],
                "error", "NegativeDuration",
                f"Duration is negative ({dur[idx]}); 1 hour was used instead.",
                "Duration must be zero (groups) or positive, in hours."
            ))

    for col in ["PlannedPct", "ActualPct"]:
        if col not in raw.columns:
            continue
        pct = pd.to_numeric(raw[col], errors="coerce")
        for idx in raw.index[((pct < 0) | (pct > 100)).to_numpy()]:
            issues.append(make_issue(
                df.at[idx, "TaskID"], df.at[idx, "Name"],
                "warning", "ProgressOutOfRange",
                f"{col} is {pct[idx]}; clipped to 0-100.",
                "Progress is a percentage between 0 and 100."
            ))

    # ------------------------------------------------------------------
    # 3. Dates
    # ------------------------------------------------------------------
    for col in DATE_COLUMNS:
        if col not in raw.columns:
            continue
        present = raw[col].notna() & (raw[col].astype(str).str.strip() != "")
        bad_count = int((present & df[col].isna()).sum())
        if bad_count > 0:
            issues.append(make_issue(
                None, None,
                "error" if bad_count < len(df) / 10 else "critical",
                "InvalidDate",
                f"{col} has {bad_count} unparseable date(s).",
                f"Fix invalid {col} values (ISO dates such as 2025-03-01 08:00)."
            ))

    for start_col, end_col, issue_type in [
        ("Planned Start", "Planned Finish", "InvalidPlannedOrder"),
        ("Current Start", "Current Finish", "InvalidCurrentOrder"),
    ]:
        bad = df[df[start_col] > df[end_col]]
        for _, row in bad.iterrows():
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "critical", issue_type,
                f"{start_col} is after {end_col}.",
                "Correct the start/finish ordering in the source schedule."
            ))

    # ------------------------------------------------------------------
    # 4. Structure
    # ------------------------------------------------------------------
    all_ids = set(df["TaskID"])
    for _, row in df[df["ParentID"].notna()].iterrows():
        pid = row["ParentID"]
        if pid == row["TaskID"]:
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "error", "SelfParent",
                "Activity lists itself as its parent; shown as a root.",
                "Clear the parent reference or point it at the summary activity."
            ))
        elif pid not in all_ids:
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "error", "MissingParentTask",
                f"Parent {pid} is not in the schedule; shown as a root.",
                "Import the summary activity or correct the parent reference."
            ))

    for tid in sorted(_cycle_members(df)):
        name = df.loc[df["TaskID"] == tid, "Name"].iloc[0]
        issues.append(make_issue(
            tid, name,
            "critical", "ParentCycle",
            "Activity is part of a parent/child loop.",
            "Break the loop so each branch ends at a top-level activity."
        ))

    return issues
