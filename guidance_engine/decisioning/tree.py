"""
Decision tree data model.

A decision tree is a tagged variant of Branch and Leaf nodes. Each Branch
holds a predicate and two children; each Leaf holds a Recommendation.
Nodes are frozen once built and compare by identity so subtrees referenced
from several places remain the same object.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from ..errors import CycleDetected, InvalidTree
from .predicates import ConditionPredicate


@dataclass(frozen=True)
class Recommendation:
    """The recommended choice at a tree leaf."""
    label: str
    rationale: Optional[str] = None
    caveats: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'rationale': self.rationale,
            'caveats': list(self.caveats)
        }


@dataclass(frozen=True, eq=False)
class Leaf:
    recommendation: Recommendation


@dataclass(frozen=True, eq=False)
class Branch:
    predicate: ConditionPredicate
    true_branch: "DecisionNode"
    false_branch: "DecisionNode"


DecisionNode = Union[Branch, Leaf]


@dataclass(frozen=True, eq=False)
class DecisionTree:
    """A named, rooted decision tree for one decision family."""
    name: str
    root: DecisionNode
    description: Optional[str] = None


@dataclass
class TreeStats:
    """Shape summary of a validated tree."""
    branches: int = 0
    leaves: int = 0
    depth: int = 0
    fields: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)


def child_path(node_path: str, outcome: bool) -> str:
    """Path of a child node, e.g. ``root/true/false``."""
    return f"{node_path}/{'true' if outcome else 'false'}"


def validate_tree(tree: DecisionTree) -> TreeStats:
    """
    Check that every path from the root ends in a Leaf and that no node is
    revisited along a path.

    Shared subtrees (the same node reachable from two parents) are allowed;
    a node reachable from itself is not.

    Returns:
        TreeStats for the validated tree

    Raises:
        CycleDetected: if a node is its own ancestor
        InvalidTree: if a node is not a Branch or Leaf, or a leaf is unlabelled
    """
    if not isinstance(tree, DecisionTree):
        raise InvalidTree(f"Expected a DecisionTree, got {type(tree).__name__}")

    stats = TreeStats()
    counted: Set[int] = set()

    def visit(node: Any, node_path: str, ancestors: Set[int], depth: int) -> None:
        if id(node) in ancestors:
            raise CycleDetected(f"Tree '{tree.name}' revisits a node at {node_path}")

        first_visit = id(node) not in counted
        counted.add(id(node))

        if isinstance(node, Leaf):
            rec = node.recommendation
            if not isinstance(rec, Recommendation) or not rec.label:
                raise InvalidTree(
                    f"Tree '{tree.name}' has a leaf without a recommendation at {node_path}"
                )
            if first_visit:
                stats.leaves += 1
                if rec.label not in stats.labels:
                    stats.labels.append(rec.label)
            stats.depth = max(stats.depth, depth)
            return

        if not isinstance(node, Branch):
            raise InvalidTree(
                f"Tree '{tree.name}' has a {type(node).__name__} where a node is "
                f"required at {node_path}; every path must end in a leaf"
            )
        if not isinstance(node.predicate, ConditionPredicate):
            raise InvalidTree(f"Tree '{tree.name}' has a branch without a predicate at {node_path}")

        if first_visit:
            stats.branches += 1
            for field_name in node.predicate.fields():
                if field_name not in stats.fields:
                    stats.fields.append(field_name)

        ancestors.add(id(node))
        visit(node.true_branch, child_path(node_path, True), ancestors, depth + 1)
        visit(node.false_branch, child_path(node_path, False), ancestors, depth + 1)
        ancestors.discard(id(node))

    visit(tree.root, "root", set(), 0)
    return stats
