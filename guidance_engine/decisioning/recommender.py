"""
Recommendation engine that walks a domain's decision tree.

The walk is deterministic and explainable: every branch predicate evaluated
on the way to the leaf is recorded, in order, together with its outcome and
the field values it read.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from ..errors import CycleDetected, EngineError, EvaluationError, MissingField
from ..facts import Situation
from .predicates import ConditionPredicate
from .tree import Branch, Leaf, Recommendation, child_path


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathStep:
    """One evaluated branch on the way from the root to a leaf."""
    predicate: ConditionPredicate
    outcome: bool
    node_path: str
    observed: Tuple[Tuple[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'node_path': self.node_path,
            'predicate': self.predicate.label,
            'outcome': self.outcome,
            'observed': dict(self.observed)
        }


@dataclass(frozen=True)
class RecommendationResult:
    """
    Outcome of a recommendation request.

    Exactly one of ``recommendation`` and ``error`` is set. ``path`` holds
    the steps taken before the walk finished or failed.
    """
    domain: str
    recommendation: Optional[Recommendation]
    path: Tuple[PathStep, ...] = ()
    tree_name: Optional[str] = None
    error: Optional[EngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'tree': self.tree_name,
            'recommendation': self.recommendation.to_dict() if self.recommendation else None,
            'path': [step.to_dict() for step in self.path],
            'error': self.error.to_dict() if self.error else None
        }


class RecommendationEngine:
    """
    Walks decision trees from a rule registry.

    The engine holds no state beyond the registry reference and may be
    shared between threads.
    """

    def __init__(self, registry):
        """
        Initialize the engine.

        Args:
            registry: RuleRegistry providing ``get(domain)``
        """
        self.registry = registry

    def walk(self, domain: str, situation: Any) -> RecommendationResult:
        """
        Walk the domain's tree against a situation.

        Args:
            domain: Registered domain id
            situation: Situation or plain mapping of facts

        Returns:
            RecommendationResult with the leaf's recommendation and path

        Raises:
            UnknownDomain: if the domain is not registered
            MissingField: if a branch needs a field the situation lacks
            EvaluationError: if a branch predicate cannot be computed
            CycleDetected: if the walk revisits a node
        """
        entry = self.registry.get(domain)
        try:
            facts = Situation.coerce(situation)
        except TypeError as e:
            raise EvaluationError(f"Invalid situation: {e}") from e
        tree = entry.tree

        node = tree.root
        node_path = "root"
        visited = set()
        path: List[PathStep] = []

        while isinstance(node, Branch):
            if id(node) in visited:
                raise CycleDetected(f"Tree '{tree.name}' revisits a node at {node_path}")
            visited.add(id(node))

            try:
                outcome = node.predicate.evaluate(facts)
            except MissingField as e:
                raise e.at(node_path) from None
            except EngineError:
                raise
            except Exception as e:
                raise EvaluationError(
                    f"Predicate '{node.predicate.label}' failed at {node_path}: {e}"
                ) from e

            observed = tuple(
                (name, facts[name]) for name in node.predicate.fields() if name in facts
            )
            path.append(PathStep(node.predicate, outcome, node_path, observed))
            logger.debug(f"{domain} {node_path}: {node.predicate.label} -> {outcome}")

            node_path = child_path(node_path, outcome)
            node = node.true_branch if outcome else node.false_branch

        if not isinstance(node, Leaf):
            raise EvaluationError(f"Tree '{tree.name}' ends without a leaf at {node_path}")

        logger.debug(
            f"{domain}: recommended {node.recommendation.label} after {len(path)} step(s)"
        )
        return RecommendationResult(
            domain=domain,
            recommendation=node.recommendation,
            path=tuple(path),
            tree_name=tree.name
        )

    def recommend(self, domain: str, situation: Any) -> RecommendationResult:
        """
        Walk the tree, reporting every failure as a result instead of raising.

        Returns:
            RecommendationResult; ``error`` is set when no recommendation
            could be produced
        """
        try:
            return self.walk(domain, situation)
        except EngineError as e:
            logger.info(f"No recommendation for {domain}: {e.message}")
            return RecommendationResult(domain=domain, recommendation=None, error=e)
        except Exception as e:
            logger.error(f"Unexpected error recommending for {domain}: {e}", exc_info=True)
            return RecommendationResult(
                domain=domain,
                recommendation=None,
                error=EvaluationError(f"{type(e).__name__}: {e}")
            )

    def recommend_batch(
        self,
        domain: str,
        situations: List[Mapping[str, Any]]
    ) -> List[RecommendationResult]:
        """
        Recommend for several situations.

        Returns:
            List of results in the same order as input
        """
        return [self.recommend(domain, situation) for situation in situations]
