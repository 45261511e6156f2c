"""
Validation layer.

Evaluates guardrail rules (MUST / SHOULD / NEVER) and checklists against a
candidate artifact and aggregates the outcome into a PASS / WARN / FAIL
report.
"""
from .guardrails import GuardrailRule, RuleResult, Severity, evaluate_rule
from .checklist import Checklist, ChecklistItem, ChecklistResult, ChecklistStatus, evaluate_item
from .validator import OverallStatus, Report, ValidationEngine, aggregate_status


__all__ = [
    'GuardrailRule',
    'RuleResult',
    'Severity',
    'evaluate_rule',
    'Checklist',
    'ChecklistItem',
    'ChecklistResult',
    'ChecklistStatus',
    'evaluate_item',
    'OverallStatus',
    'Report',
    'ValidationEngine',
    'aggregate_status',
]
