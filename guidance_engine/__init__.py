"""
Rule-based recommendation and validation engine for technology guidance.

Walks per-domain decision trees to recommend a choice for a described
situation, and checks candidate artifacts against MUST / SHOULD / NEVER
guardrails and checklists.

Typical use:

    from guidance_engine import install_registry, recommend, validate

    install_registry([], include_builtin=True)
    result = recommend("rendering-mode", {"contentChangeFrequency": "rare", "needsSEO": True})
    report = validate("build-caching", {"usesContentHash": False})

``recommend`` and ``validate`` never raise; failures are carried on the
returned result.
"""
from typing import Any, Optional

from .decisioning import (
    Recommendation,
    RecommendationEngine,
    RecommendationExplainer,
    RecommendationResult,
)
from .errors import (
    CycleDetected,
    DuplicateRuleId,
    EngineError,
    EvaluationError,
    InvalidSource,
    InvalidTree,
    MissingField,
    RegistryError,
    UnknownDomain,
)
from .facts import CandidateArtifact, Situation
from .registry import (
    RuleRegistry,
    get_registry,
    install_registry,
    load_builtin_registry,
    load_registry,
)
from .validation import OverallStatus, Report, ValidationEngine


__version__ = "0.1.0"


def recommend(
    domain: str,
    situation: Any,
    registry: Optional[RuleRegistry] = None
) -> RecommendationResult:
    """
    Recommend a choice for ``situation`` using the domain's decision tree.

    Args:
        domain: Registered domain id
        situation: Situation or plain mapping of facts
        registry: Registry to read; defaults to the installed registry
    """
    if registry is None:
        registry = get_registry()
    return RecommendationEngine(registry).recommend(domain, situation)


def validate(
    domain: str,
    artifact: Any,
    registry: Optional[RuleRegistry] = None
) -> Report:
    """
    Validate ``artifact`` against the domain's guardrail rules and checklist.

    Args:
        domain: Registered domain id
        artifact: CandidateArtifact or plain mapping of facts
        registry: Registry to read; defaults to the installed registry
    """
    if registry is None:
        registry = get_registry()
    return ValidationEngine(registry).validate(domain, artifact)


__all__ = [
    'recommend',
    'validate',
    'load_registry',
    'load_builtin_registry',
    'install_registry',
    'get_registry',
    'RuleRegistry',
    'Situation',
    'CandidateArtifact',
    'Recommendation',
    'RecommendationEngine',
    'RecommendationExplainer',
    'RecommendationResult',
    'ValidationEngine',
    'Report',
    'OverallStatus',
    'EngineError',
    'UnknownDomain',
    'MissingField',
    'EvaluationError',
    'RegistryError',
    'InvalidTree',
    'CycleDetected',
    'DuplicateRuleId',
    'InvalidSource',
]
