"""
Recommendation layer.

Provides deterministic, explainable recommendations by walking a domain's
decision tree against a structured situation.
"""
from .predicates import (
    AllOf,
    AnyOf,
    CallablePredicate,
    Comparison,
    ConditionPredicate,
    Not,
    Operator,
    parse_predicate,
)
from .tree import Branch, DecisionTree, Leaf, Recommendation, TreeStats, validate_tree
from .recommender import PathStep, RecommendationEngine, RecommendationResult
from .explainer import RecommendationExplainer


__all__ = [
    'AllOf',
    'AnyOf',
    'CallablePredicate',
    'Comparison',
    'ConditionPredicate',
    'Not',
    'Operator',
    'parse_predicate',
    'Branch',
    'DecisionTree',
    'Leaf',
    'Recommendation',
    'TreeStats',
    'validate_tree',
    'PathStep',
    'RecommendationEngine',
    'RecommendationResult',
    'RecommendationExplainer',
]
