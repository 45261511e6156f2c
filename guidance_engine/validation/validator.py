"""
Validation engine: evaluates a domain's guardrail rules and checklist
against a candidate artifact and aggregates the results into a Report.

Evaluation is exhaustive. Every rule and every checklist item is evaluated
regardless of earlier failures, so a report always has one result per rule
and one per item.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from ..errors import EngineError, EvaluationError
from ..facts import CandidateArtifact
from .checklist import ChecklistResult, ChecklistStatus, evaluate_item
from .guardrails import RuleResult, evaluate_rule


logger = logging.getLogger(__name__)


class OverallStatus(Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class Report:
    """Validation output; built once per call and never mutated."""
    domain: str
    rule_results: Tuple[RuleResult, ...]
    checklist_results: Tuple[ChecklistResult, ...]
    overall_status: OverallStatus
    error: Optional[EngineError] = None

    @property
    def violations(self) -> List[RuleResult]:
        """Blocking (MUST/NEVER) rule failures."""
        return [r for r in self.rule_results if r.blocking]

    @property
    def warnings(self) -> List[RuleResult]:
        """Non-blocking (SHOULD) rule failures."""
        return [r for r in self.rule_results if not r.passed and not r.blocking]

    @property
    def manual_review(self) -> List[ChecklistResult]:
        return [
            c for c in self.checklist_results
            if c.status is ChecklistStatus.NEEDS_MANUAL_REVIEW
        ]

    @property
    def failed_checks(self) -> List[ChecklistResult]:
        return [c for c in self.checklist_results if c.status is ChecklistStatus.FAIL]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'overall_status': self.overall_status.value,
            'rules': [r.to_dict() for r in self.rule_results],
            'checklist': [c.to_dict() for c in self.checklist_results],
            'summary': {
                'rules': len(self.rule_results),
                'violations': len(self.violations),
                'warnings': len(self.warnings),
                'checklist_items': len(self.checklist_results),
                'failed_checks': len(self.failed_checks),
                'needs_manual_review': len(self.manual_review)
            },
            'error': self.error.to_dict() if self.error else None
        }


def aggregate_status(
    rule_results: Tuple[RuleResult, ...],
    checklist_results: Tuple[ChecklistResult, ...]
) -> OverallStatus:
    """
    FAIL on any blocking violation; WARN on SHOULD violations, failed
    checklist items or pending manual review; PASS otherwise.
    """
    if any(r.blocking for r in rule_results):
        return OverallStatus.FAIL
    if any(not r.passed for r in rule_results):
        return OverallStatus.WARN
    if any(c.status is not ChecklistStatus.PASS for c in checklist_results):
        return OverallStatus.WARN
    return OverallStatus.PASS


class ValidationEngine:
    """Validates candidate artifacts against registry rules and checklists."""

    def __init__(self, registry):
        """
        Initialize the engine.

        Args:
            registry: RuleRegistry providing ``get(domain)``
        """
        self.registry = registry

    def validate(self, domain: str, artifact: Any) -> Report:
        """
        Validate an artifact against a domain's rules and checklist.

        Args:
            domain: Registered domain id
            artifact: CandidateArtifact or plain mapping of facts

        Returns:
            Report; an unknown domain or unusable artifact yields a FAIL
            report with ``error`` set and no results
        """
        try:
            entry = self.registry.get(domain)
            facts = CandidateArtifact.coerce(artifact)
        except EngineError as e:
            logger.info(f"Cannot validate for {domain}: {e.message}")
            return Report(domain, (), (), OverallStatus.FAIL, error=e)
        except TypeError as e:
            return Report(domain, (), (), OverallStatus.FAIL, error=EvaluationError(str(e)))

        rule_results = tuple(evaluate_rule(rule, facts) for rule in entry.rules)
        checklist_results = tuple(evaluate_item(item, facts) for item in entry.checklist)
        status = aggregate_status(rule_results, checklist_results)

        logger.debug(
            f"{domain}: {len(rule_results)} rule(s), {len(checklist_results)} "
            f"checklist item(s) -> {status.value}"
        )
        return Report(domain, rule_results, checklist_results, status)

    def validate_batch(self, domain: str, artifacts: List[Mapping[str, Any]]) -> List[Report]:
        """Validate several artifacts, returning reports in input order."""
        return [self.validate(domain, artifact) for artifact in artifacts]
