import pandas as pd

from shutdown_tracker.validation.schedule_validator import validate_schedule


def clean_schedule():
    return pd.DataFrame(
        [
            {
                "TaskID": "G",
                "Name": "Boiler",
                "Duration": 0,
                "Planned Start": "2025-03-10 06:00",
                "Planned Finish": "2025-03-11 06:00",
                "PlannedPct": 0,
                "ActualPct": 0,
                "ParentID": None,
            },
            {
                "TaskID": "A",
                "Name": "Open manholes",
                "Duration": 6,
                "Planned Start": "2025-03-10 06:00",
                "Planned Finish": "2025-03-10 12:00",
                "PlannedPct": 50,
                "ActualPct": 40,
                "ParentID": "G",
            },
        ]
    )


def issue_types(issues):
    return [i["IssueType"] for i in issues]


def test_clean_schedule_has_no_issues():
    assert validate_schedule(clean_schedule()) == []


def test_empty_schedule():
    assert issue_types(validate_schedule([])) == ["EmptySchedule"]


def test_duplicate_ids():
    df = pd.concat([clean_schedule(), clean_schedule().iloc[[1]]], ignore_index=True)
    issues = validate_schedule(df)

    assert "DuplicateTaskID" in issue_types(issues)


def test_missing_name_and_bad_numbers():
    df = clean_schedule()
    df.loc[1, "Name"] = None
    df.loc[1, "Duration"] = -4
    df.loc[1, "ActualPct"] = 120
    issues = validate_schedule(df)

    assert sorted(issue_types(issues)) == ["MissingName", "NegativeDuration", "ProgressOutOfRange"]
    assert all(i["TaskID"] == "A" for i in issues)


def test_dates_out_of_order_and_unparseable():
    df = clean_schedule()
    df.loc[1, "Planned Finish"] = "2025-03-10 02:00"
    df.loc[0, "Planned Start"] = "someday"
    issues = validate_schedule(df)
    types = issue_types(issues)

    assert "InvalidPlannedOrder" in types
    assert "InvalidCurrentOrder" in types
    assert "InvalidDate" in types


def test_structure_problems():
    df = pd.DataFrame(
        [
            {"TaskID": "A", "Name": "a", "ParentID": "B"},
            {"TaskID": "B", "Name": "b", "ParentID": "A"},
            {"TaskID": "C", "Name": "c", "ParentID": "C"},
            {"TaskID": "D", "Name": "d", "ParentID": "ghost"},
        ]
    )
    issues = validate_schedule(df)
    by_task = {(i["TaskID"], i["IssueType"]) for i in issues}

    assert ("A", "ParentCycle") in by_task
    assert ("B", "ParentCycle") in by_task
    assert ("C", "SelfParent") in by_task
    assert ("D", "MissingParentTask") in by_task
    assert all(i["Severity"] in {"critical", "error", "warning"} for i in issues)
