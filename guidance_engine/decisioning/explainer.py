"""
Explanation generator for recommendations.

Turns a RecommendationResult's path trace into a readable sentence using
per-operator templates and the field values observed during the walk.
"""
from typing import Any, Dict, List, Optional
import logging

from .predicates import Comparison, ConditionPredicate, Operator
from .recommender import PathStep, RecommendationResult


logger = logging.getLogger(__name__)


class RecommendationExplainer:
    """
    Generates human-readable explanations for recommendation results.

    Comparison predicates are rendered through templates keyed by operator
    and outcome; compound and callable predicates fall back to their label.
    """

    DEFAULT_TEMPLATES = {
        ('eq', True): "{field} is {expected}",
        ('eq', False): "{field} is {actual}, not {expected}",
        ('neq', True): "{field} is {actual}, not {expected}",
        ('neq', False): "{field} is {expected}",
        ('gt', True): "{field} ({actual}) is above {expected}",
        ('gt', False): "{field} ({actual}) is not above {expected}",
        ('lt', True): "{field} ({actual}) is below {expected}",
        ('lt', False): "{field} ({actual}) is not below {expected}",
        ('in', True): "{field} is {actual}, one of {expected}",
        ('in', False): "{field} is {actual}, none of {expected}",
        ('exists', True): "{field} was provided",
        ('exists', False): "{field} was not provided",
        'OTHER': "{label} holds",
        'OTHER_FALSE': "{label} does not hold",
        'RESULT': "Recommended {label} because {reasons}.",
        'RESULT_NO_PATH': "Recommended {label}.",
        'ERROR': "No recommendation for {domain}: {error}"
    }

    def __init__(self, templates: Optional[Dict[Any, str]] = None):
        """
        Initialize explainer with templates.

        Args:
            templates: Overrides merged over DEFAULT_TEMPLATES
        """
        self.templates = dict(self.DEFAULT_TEMPLATES)
        if templates:
            self.templates.update(templates)

    def explain(self, result: RecommendationResult) -> str:
        """
        Generate a one-sentence explanation for a result.

        Args:
            result: Result returned by the recommendation engine

        Returns:
            Explanation string
        """
        if result.error is not None:
            return self.templates['ERROR'].format(
                domain=result.domain, error=result.error.message
            )

        label = result.recommendation.label
        if not result.path:
            return self.templates['RESULT_NO_PATH'].format(label=label)

        reasons = [self.explain_step(step) for step in result.path]
        return self.templates['RESULT'].format(label=label, reasons=self._join(reasons))

    def explain_step(self, step: PathStep) -> str:
        """Render a single path step as a clause."""
        predicate = step.predicate
        observed = dict(step.observed)

        if isinstance(predicate, Comparison):
            # Exists always reports presence; it has nothing to inverse
            if predicate.operator is Operator.EXISTS:
                outcome = step.outcome if predicate.value else not step.outcome
            else:
                outcome = step.outcome
            template = self.templates.get((predicate.operator.value, outcome))
            if template:
                values = self._prepare_values(predicate, observed)
                try:
                    return template.format(**values)
                except (KeyError, IndexError) as e:
                    logger.warning(f"Missing template variable {e} for {predicate.label}")

        key = 'OTHER' if step.outcome else 'OTHER_FALSE'
        return self.templates[key].format(label=predicate.label)

    def explain_with_context(self, result: RecommendationResult) -> Dict[str, Any]:
        """
        Generate explanation plus the structured trace.

        Returns:
            Dictionary with explanation, recommendation details and steps
        """
        payload = {'explanation': self.explain(result)}
        payload.update(result.to_dict())
        payload['steps'] = [
            {'node_path': step.node_path, 'reason': self.explain_step(step)}
            for step in result.path
        ]
        return payload

    def _prepare_values(
        self,
        predicate: ConditionPredicate,
        observed: Dict[str, Any]
    ) -> Dict[str, str]:
        """Prepare substitution values, rendering absent values as 'unknown'."""
        actual = observed.get(predicate.field)
        if isinstance(predicate.value, tuple):
            expected = ', '.join(self._render(v) for v in predicate.value)
        else:
            expected = self._render(predicate.value)

        return {
            'field': predicate.field,
            'actual': self._render(actual) if predicate.field in observed else 'unknown',
            'expected': expected,
            'label': predicate.label
        }

    @staticmethod
    def _render(value: Any) -> str:
        if value is None:
            return 'null'
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, str):
            return f"'{value}'"
        return str(value)

    @staticmethod
    def _join(parts: List[str]) -> str:
        if len(parts) == 1:
            return parts[0]
        return ', '.join(parts[:-1]) + ' and ' + parts[-1]
