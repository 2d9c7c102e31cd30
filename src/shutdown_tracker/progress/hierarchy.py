# shutdown_tracker/progress/hierarchy.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from shutdown_tracker.config import DEFAULT_DURATION_HOURS
from shutdown_tracker.progress.normalize import normalize_activities

logger = logging.getLogger(__name__)


@dataclass
class ActivityNode:
    task_id: str
    name: str
    duration: float
    planned_pct: float
    actual_pct: float
    is_group: bool = False
    parent_id: Optional[str] = None
    row: Dict[str, Any] = field(default_factory=dict)
    children: List["ActivityNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.is_group and not self.children

    def walk(self) -> Iterator["ActivityNode"]:
        """Pre-order traversal of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def _node_from_row(row: Dict[str, Any]) -> ActivityNode:
    return ActivityNode(
        task_id=row["TaskID"],
        name=row["Name"],
        duration=float(row["Duration"]),
        planned_pct=float(row["PlannedPct"]),
        actual_pct=float(row["ActualPct"]),
        is_group=bool(row["IsGroup"]),
        parent_id=row["ParentID"],
        row=row,
    )


# ---------------------------------------------------------
# FOREST CONSTRUCTION
# ---------------------------------------------------------

def build_hierarchy(activities) -> List[ActivityNode]:
    """
    Turn a flat activity list with ParentID links into a forest.

    One pass indexes nodes by TaskID, a second attaches each node to its
    parent in input order. Activities without a parent, or whose parent
    id is not in the list, become roots: partial or corrupted imports
    still render instead of failing.

    Parent cycles (A -> B -> A) would leave nodes unreachable from any
    root; the first such node in input order is detached and promoted to
    a root until every node is reachable.
    """
    df = normalize_activities(activities)
    nodes = [_node_from_row(r) for r in df.to_dict(orient="records")]

    index: Dict[str, ActivityNode] = {}
    for node in nodes:
        # Duplicate ids: children attach to the first occurrence
        index.setdefault(node.task_id, node)

    roots: List[ActivityNode] = []
    parent_of: Dict[int, ActivityNode] = {}
    for node in nodes:
        parent = index.get(node.parent_id) if node.parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
            parent_of[id(node)] = parent

    _break_cycles(nodes, roots, parent_of)
    return roots


def _break_cycles(nodes, roots, parent_of) -> None:
    reached = {id(n) for root in roots for n in root.walk()}
    if len(reached) == len(nodes):
        return

    order = {id(n): i for i, n in enumerate(nodes)}
    for node in nodes:
        if id(node) in reached:
            continue
        parent = parent_of[id(node)]
        parent.children = [c for c in parent.children if c is not node]
        logger.warning("Activity %s is part of a parent cycle; shown as a root", node.task_id)
        roots.append(node)
        reached.update(id(n) for n in node.walk())

    roots.sort(key=lambda r: order[id(r)])


def flatten(roots: List[ActivityNode]) -> List[ActivityNode]:
    """All nodes of the forest, pre-order."""
    return [node for root in roots for node in root.walk()]


def leaves(roots: List[ActivityNode]) -> List[ActivityNode]:
    return [node for node in flatten(roots) if node.is_leaf]


# ---------------------------------------------------------
# DISPLAY ROLL-UP
# ---------------------------------------------------------

def _rolled(root: ActivityNode) -> ActivityNode:
    # Post-order with an explicit stack: children are rebuilt before their parent
    done: Dict[int, Tuple[ActivityNode, float, float, float]] = {}
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()

        if node.is_leaf:
            weight = node.duration if node.duration > 0 else DEFAULT_DURATION_HOURS
            done[id(node)] = (
                replace(node, children=[]),
                weight,
                node.planned_pct * weight,
                node.actual_pct * weight,
            )
            continue

        if not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
            continue

        children = []
        weight = planned = actual = 0.0
        for child in node.children:
            new_child, w, p, a = done.pop(id(child))
            children.append(new_child)
            weight += w
            planned += p
            actual += a

        if weight > 0:
            out = replace(
                node,
                children=children,
                planned_pct=round(planned / weight, 1),
                actual_pct=round(actual / weight, 1),
            )
        else:
            # Group with no leaves below it keeps its own values
            out = replace(node, children=children)
        done[id(node)] = (out, weight, planned, actual)

    return done[id(root)][0]


def rollup_progress(roots: List[ActivityNode]) -> List[ActivityNode]:
    """
    Copy of the forest where each group shows the duration-weighted
    progress of the leaves below it. Leaves are unchanged; the input
    forest is not modified. For display only: project totals come from
    aggregator.compute_stats over the leaves.
    """
    return [_rolled(root) for root in roots]


def hierarchy_frame(roots: List[ActivityNode]) -> pd.DataFrame:
    """Pre-order table of the forest with a Level column for indented grids."""
    records = []
    stack = [(root, 0) for root in reversed(roots)]
    while stack:
        node, level = stack.pop()
        records.append(
            {
                "TaskID": node.task_id,
                "Name": node.name,
                "Level": level,
                "IsGroup": not node.is_leaf,
                "Duration": node.duration,
                "PlannedPct": node.planned_pct,
                "ActualPct": node.actual_pct,
                "ParentID": node.parent_id,
            }
        )
        stack.extend((child, level + 1) for child in reversed(node.children))

    frame = pd.DataFrame(
        records,
        columns=["TaskID", "Name", "Level", "IsGroup", "Duration", "PlannedPct", "ActualPct", "ParentID"],
    )
    # roots keep None, not NaN
    frame["ParentID"] = pd.Series([r["ParentID"] for r in records], index=frame.index, dtype=object)
    return frame
