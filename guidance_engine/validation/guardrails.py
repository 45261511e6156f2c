"""
Guardrail rules: MUST / SHOULD / NEVER constraints over a candidate artifact.

Severity decides how a predicate outcome maps to a violation:
- MUST:   violated when the predicate is false (blocking)
- NEVER:  violated when the predicate is true (blocking)
- SHOULD: violated when the predicate is false (warning only)
"""
from dataclasses import dataclass
from enum import Enum
from string import Formatter
from typing import Any, Dict, Mapping, Optional
import logging

from ..decisioning.predicates import ConditionPredicate
from ..errors import EngineError


logger = logging.getLogger(__name__)


class Severity(Enum):
    MUST = "MUST"
    SHOULD = "SHOULD"
    NEVER = "NEVER"

    @property
    def blocking(self) -> bool:
        """True if a violation of this severity fails validation."""
        return self is not Severity.SHOULD


class _TemplateValues(dict):
    def __missing__(self, key):
        return 'unknown'


_FORMATTER = Formatter()


def _template_value(value: Any) -> Any:
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return value


@dataclass(frozen=True, eq=False)
class GuardrailRule:
    """A severity-tagged rule with a predicate and violation message template."""
    rule_id: str
    severity: Severity
    predicate: ConditionPredicate
    message: str
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.rule_id, str) or not self.rule_id:
            raise ValueError("Guardrail rule id must be a non-empty string")
        if not isinstance(self.severity, Severity):
            try:
                object.__setattr__(self, 'severity', Severity(str(self.severity).upper()))
            except ValueError:
                allowed = ', '.join(s.value for s in Severity)
                raise ValueError(
                    f"Rule '{self.rule_id}' has unknown severity '{self.severity}' "
                    f"(allowed: {allowed})"
                ) from None
        if not isinstance(self.predicate, ConditionPredicate):
            raise ValueError(f"Rule '{self.rule_id}' needs a predicate")
        if not isinstance(self.message, str) or not self.message.strip():
            raise ValueError(f"Rule '{self.rule_id}' needs a violation message")

    def is_violated(self, outcome: bool) -> bool:
        if self.severity is Severity.NEVER:
            return outcome
        return not outcome

    def render_message(self, artifact: Mapping[str, Any]) -> str:
        """
        Fill the violation template from the artifact.

        Unknown placeholders render as 'unknown'; a malformed template is
        returned verbatim.
        """
        values = _TemplateValues(
            (key, _template_value(value)) for key, value in artifact.items()
        )
        values['rule_id'] = self.rule_id
        values['severity'] = self.severity.value
        try:
            return _FORMATTER.vformat(self.message, (), values).strip()
        except (AttributeError, IndexError, KeyError, ValueError) as e:
            logger.warning(f"Could not render message for rule {self.rule_id}: {e}")
            return self.message.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.rule_id,
            'severity': self.severity.value,
            'predicate': self.predicate.to_dict(),
            'message': self.message,
            'description': self.description
        }


@dataclass(frozen=True)
class RuleResult:
    """Outcome of evaluating one guardrail rule."""
    rule: GuardrailRule
    passed: bool
    message: str
    error: Optional[str] = None

    @property
    def severity(self) -> Severity:
        return self.rule.severity

    @property
    def blocking(self) -> bool:
        """True if this result fails the report."""
        return not self.passed and self.rule.severity.blocking

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule_id': self.rule.rule_id,
            'severity': self.rule.severity.value,
            'passed': self.passed,
            'message': self.message,
            'error': self.error
        }


def evaluate_rule(rule: GuardrailRule, artifact: Mapping[str, Any]) -> RuleResult:
    """
    Evaluate a single rule, never raising.

    A predicate that raises produces a failed result whose message starts
    with ``EvaluationError:``.
    """
    try:
        outcome = rule.predicate.evaluate(artifact)
    except EngineError as e:
        logger.warning(f"Rule {rule.rule_id} could not be evaluated: {e.message}")
        return RuleResult(
            rule=rule,
            passed=False,
            message=f"EvaluationError: {e.message}",
            error=e.code
        )
    except Exception as e:
        logger.error(f"Error evaluating rule {rule.rule_id}: {e}", exc_info=True)
        return RuleResult(
            rule=rule,
            passed=False,
            message=f"EvaluationError: {type(e).__name__}: {e}",
            error="EVALUATION_ERROR"
        )

    if rule.is_violated(outcome):
        return RuleResult(rule=rule, passed=False, message=rule.render_message(artifact))

    return RuleResult(
        rule=rule,
        passed=True,
        message=rule.description or f"{rule.severity.value}: {rule.predicate.label}"
    )
