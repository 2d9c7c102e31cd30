import pandas as pd

from shutdown_tracker.progress.aggregator import compute_stats
from shutdown_tracker.progress.hierarchy import (
    build_hierarchy,
    flatten,
    hierarchy_frame,
    leaves,
    rollup_progress,
)

NOW = pd.Timestamp("2025-03-10 12:00", tz="UTC")


def ids(nodes):
    return [n.task_id for n in nodes]


# ----------------------------------------------------------------
# 1. FOREST CONSTRUCTION
# ----------------------------------------------------------------
def test_unresolvable_parent_becomes_root():
    data = [
        {"id": "A", "parent": None},
        {"id": "B", "parent": "A"},
        {"id": "C", "parent": "missing"},
    ]
    roots = build_hierarchy(data)

    assert ids(roots) == ["A", "C"]
    assert ids(roots[0].children) == ["B"]
    assert roots[1].children == []


def test_children_keep_input_order_per_parent():
    data = [
        {"TaskID": "P", "Name": "Boiler"},
        {"TaskID": "c3", "ParentID": "P"},
        {"TaskID": "Q", "Name": "Turbine"},
        {"TaskID": "c1", "ParentID": "P"},
        {"TaskID": "q1", "ParentID": "Q"},
        {"TaskID": "c2", "ParentID": "P"},
    ]
    roots = build_hierarchy(data)

    assert ids(roots) == ["P", "Q"]
    assert ids(roots[0].children) == ["c3", "c1", "c2"]
    assert ids(roots[1].children) == ["q1"]


def test_child_listed_before_parent_is_still_attached():
    data = [
        {"TaskID": "B", "ParentID": "A"},
        {"TaskID": "A"},
    ]
    roots = build_hierarchy(data)

    assert ids(roots) == ["A"]
    assert ids(roots[0].children) == ["B"]


def test_self_parent_is_a_root():
    roots = build_hierarchy([{"TaskID": "A", "ParentID": "A"}])

    assert ids(roots) == ["A"]
    assert roots[0].children == []


def test_parent_cycle_is_broken_at_first_member():
    """
    A -> B -> A never reaches a root; A is promoted and keeps B
    """
    data = [
        {"TaskID": "A", "ParentID": "B"},
        {"TaskID": "B", "ParentID": "A"},
        {"TaskID": "R"},
    ]
    roots = build_hierarchy(data)

    assert ids(roots) == ["A", "R"]
    assert ids(roots[0].children) == ["B"]
    assert roots[0].children[0].children == []
    assert len(flatten(roots)) == 3


def test_parents_are_flagged_as_groups():
    data = [
        {"TaskID": "G", "Duration": 12},
        {"TaskID": "A", "ParentID": "G", "Duration": 4},
    ]
    roots = build_hierarchy(data)

    assert roots[0].is_group
    assert not roots[0].is_leaf
    assert roots[0].children[0].is_leaf


def test_flatten_and_leaves_pre_order():
    data = [
        {"TaskID": "G1"},
        {"TaskID": "G2", "ParentID": "G1"},
        {"TaskID": "a", "ParentID": "G2", "Duration": 2},
        {"TaskID": "b", "ParentID": "G1", "Duration": 3},
        {"TaskID": "c", "Duration": 1},
    ]
    roots = build_hierarchy(data)

    assert ids(flatten(roots)) == ["G1", "G2", "a", "b", "c"]
    assert ids(leaves(roots)) == ["a", "b", "c"]


def test_empty_input_gives_empty_forest():
    assert build_hierarchy([]) == []


# ----------------------------------------------------------------
# 2. ROLL-UP
# ----------------------------------------------------------------
def test_rollup_weights_groups_by_descendant_duration():
    """
    G holds A (10h, 100/100) and B (30h, 50/0)
    Planned = 100*0.25 + 50*0.75 = 62.5, Actual = 25.0
    """
    data = [
        {"TaskID": "G", "Duration": 0},
        {"TaskID": "A", "ParentID": "G", "Duration": 10, "PlannedPct": 100, "ActualPct": 100},
        {"TaskID": "B", "ParentID": "G", "Duration": 30, "PlannedPct": 50, "ActualPct": 0},
    ]
    roots = build_hierarchy(data)
    rolled = rollup_progress(roots)

    group = rolled[0]
    assert group.planned_pct == 62.5
    assert group.actual_pct == 25.0
    assert group.children[0].actual_pct == 100.0

    # Source forest is untouched
    assert roots[0].actual_pct == 0.0
    assert roots[0].planned_pct == 0.0


def test_rollup_nested_groups_use_leaf_weights():
    data = [
        {"TaskID": "G1", "Duration": 0},
        {"TaskID": "G2", "ParentID": "G1", "Duration": 0},
        {"TaskID": "a", "ParentID": "G2", "Duration": 1, "ActualPct": 100},
        {"TaskID": "b", "ParentID": "G2", "Duration": 1, "ActualPct": 0},
        {"TaskID": "c", "ParentID": "G1", "Duration": 2, "ActualPct": 100},
    ]
    rolled = rollup_progress(build_hierarchy(data))

    g1 = rolled[0]
    g2 = g1.children[0]
    assert g2.actual_pct == 50.0
    assert g1.actual_pct == 75.0


def test_empty_group_keeps_its_own_values():
    rolled = rollup_progress(build_hierarchy([{"TaskID": "G", "IsGroup": True, "ActualPct": 30}]))

    assert rolled[0].actual_pct == 30.0


def test_rollup_matches_project_stats_for_a_single_root():
    data = [
        {"TaskID": "G", "Duration": 0},
        {"TaskID": "A", "ParentID": "G", "Duration": 6, "PlannedPct": 80, "ActualPct": 40},
        {"TaskID": "B", "ParentID": "G", "Duration": 2, "PlannedPct": 20, "ActualPct": 60},
    ]
    root = rollup_progress(build_hierarchy(data))[0]
    stats = compute_stats(data, NOW)

    assert root.actual_pct == stats.actual_physical
    assert root.planned_pct == stats.planned_physical


# ----------------------------------------------------------------
# 3. TABLE VIEW
# ----------------------------------------------------------------
def test_hierarchy_frame_levels():
    data = [
        {"TaskID": "G", "Name": "Boiler"},
        {"TaskID": "A", "Name": "Open manholes", "ParentID": "G"},
        {"TaskID": "B", "Name": "Inspect drum", "ParentID": "G"},
    ]
    frame = hierarchy_frame(build_hierarchy(data))

    assert frame["TaskID"].tolist() == ["G", "A", "B"]
    assert frame["Level"].tolist() == [0, 1, 1]
    assert frame["IsGroup"].tolist() == [True, False, False]


def test_hierarchy_frame_keeps_missing_parents_as_none():
    frame = hierarchy_frame(build_hierarchy([{"TaskID": "A"}, {"TaskID": "B", "ParentID": "A"}]))

    assert frame["ParentID"].tolist() == [None, "A"]


# ----------------------------------------------------------------
# 4. DEEP CHAINS
# ----------------------------------------------------------------
def deep_chain(depth):
    data = [{"TaskID": "N0"}]
    data += [{"TaskID": f"N{i}", "ParentID": f"N{i - 1}"} for i in range(1, depth)]
    data[-1].update({"Duration": 4, "PlannedPct": 80, "ActualPct": 50})
    return data


def test_rollup_and_frame_handle_very_deep_chains():
    depth = 1200
    rolled = rollup_progress(build_hierarchy(deep_chain(depth)))

    assert len(rolled) == 1
    assert rolled[0].actual_pct == 50.0
    assert rolled[0].planned_pct == 80.0

    frame = hierarchy_frame(rolled)
    assert len(frame) == depth
    assert frame["Level"].tolist() == list(range(depth))
    assert frame["IsGroup"].sum() == depth - 1
