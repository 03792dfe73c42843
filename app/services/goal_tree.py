"""Assemble flat goal lists into quarterly/weekly/daily trees."""
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from app.errors import StructuralFaultError
from app.models.goal import Goal, GoalDepth, GoalNode

logger = logging.getLogger(__name__)


@dataclass
class GoalTree:
    """
    Result of building a goal tree.

    ``roots`` are the quarterly goals in input order, ``index`` maps every
    supplied goal id to its node, and ``orphans`` lists the nodes that are
    not reachable from any root (their parent was not in the supplied set,
    or is itself unreachable).
    """

    roots: list[GoalNode] = field(default_factory=list)
    index: dict[str, GoalNode] = field(default_factory=dict)
    orphans: list[GoalNode] = field(default_factory=list)


def to_node(goal: Goal) -> GoalNode:
    """Create a childless tree node from a goal."""
    data = goal.model_dump()
    data["path"] = goal.materialized_path
    data["children"] = []
    return GoalNode(**data)


def build_goal_tree(
    goals: Iterable[Goal],
    attach: Optional[Callable[[GoalNode], GoalNode]] = None,
) -> GoalTree:
    """
    Build a tree from a flat list of goals.

    Every goal is indexed once; ``attach`` runs on each node while the index
    is built and its return value is what gets indexed. Children are then
    linked to their parents with direct index lookups.

    Args:
        goals: Goals of any depth, typically one period
        attach: Optional per-node transform (e.g. to add week state)

    Returns:
        GoalTree with roots, id index and unattached nodes

    Raises:
        StructuralFaultError: If a weekly or daily goal has no parent_id,
            its parent sits at the wrong depth, or an id appears twice
    """
    tree = GoalTree()
    ordered: list[GoalNode] = []

    for goal in goals:
        node = to_node(goal)
        if attach is not None:
            node = attach(node)
        if node.id in tree.index:
            raise StructuralFaultError(f"Goal {node.id} appears twice in the input")
        tree.index[node.id] = node
        ordered.append(node)

    unresolved = []
    for node in ordered:
        if node.depth == GoalDepth.QUARTERLY:
            tree.roots.append(node)
            continue

        if not node.parent_id:
            raise StructuralFaultError(
                f"Goal {node.id} at depth {int(node.depth)} has no parent_id"
            )

        parent = tree.index.get(node.parent_id)
        if parent is None:
            unresolved.append(node.id)
            continue

        if parent.depth != node.depth - 1:
            raise StructuralFaultError(
                f"Goal {node.id} at depth {int(node.depth)} has parent "
                f"{parent.id} at depth {int(parent.depth)}"
            )

        node.parent_title = parent.title
        if parent.parent_id:
            grand_parent = tree.index.get(parent.parent_id)
            if grand_parent is not None:
                node.grand_parent_title = grand_parent.title

        parent.children.append(node)

    if unresolved:
        logger.debug("Parents not in supplied set for goals: %s", unresolved)

    reachable = set()
    stack = list(tree.roots)
    while stack:
        node = stack.pop()
        reachable.add(node.id)
        stack.extend(node.children)

    tree.orphans = [node for node in ordered if node.id not in reachable]
    return tree
