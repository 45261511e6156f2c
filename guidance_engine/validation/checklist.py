"""
Checklists: ordered verification questions grouped by category.

Items with a predicate are answered automatically; items without one need
human judgment and are always reported as needing manual review. Insertion
order is display order.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple
import logging

from ..decisioning.predicates import ConditionPredicate
from ..errors import EngineError, MissingField


logger = logging.getLogger(__name__)


class ChecklistStatus(Enum):
    PASS = "pass"
    FAIL = "fail"
    NEEDS_MANUAL_REVIEW = "needsManualReview"


@dataclass(frozen=True, eq=False)
class ChecklistItem:
    category: str
    question: str
    predicate: Optional[ConditionPredicate] = None

    def __post_init__(self):
        if not isinstance(self.category, str) or not self.category.strip():
            raise ValueError("Checklist category must be a non-empty string")
        if not isinstance(self.question, str) or not self.question.strip():
            raise ValueError(f"Checklist item in '{self.category}' needs a question")
        if self.predicate is not None and not isinstance(self.predicate, ConditionPredicate):
            raise ValueError(f"Checklist item '{self.question}' has an invalid predicate")

    @property
    def manual(self) -> bool:
        return self.predicate is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'question': self.question,
            'predicate': self.predicate.to_dict() if self.predicate else None
        }


@dataclass(frozen=True)
class Checklist:
    items: Tuple[ChecklistItem, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))

    def __iter__(self) -> Iterator[ChecklistItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def categories(self) -> Dict[str, Tuple[ChecklistItem, ...]]:
        """Items grouped by category, categories in first-seen order."""
        grouped: Dict[str, list] = {}
        for item in self.items:
            grouped.setdefault(item.category, []).append(item)
        return {category: tuple(items) for category, items in grouped.items()}


@dataclass(frozen=True)
class ChecklistResult:
    item: ChecklistItem
    status: ChecklistStatus
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.item.category,
            'question': self.item.question,
            'status': self.status.value,
            'note': self.note
        }


def evaluate_item(item: ChecklistItem, artifact: Mapping[str, Any]) -> ChecklistResult:
    """
    Answer one checklist item, never raising.

    An automated item whose input field is missing is deferred to manual
    review instead of being answered.
    """
    if item.manual:
        return ChecklistResult(item, ChecklistStatus.NEEDS_MANUAL_REVIEW, "Requires human judgment")

    try:
        outcome = item.predicate.evaluate(artifact)
    except MissingField as e:
        return ChecklistResult(
            item,
            ChecklistStatus.NEEDS_MANUAL_REVIEW,
            f"Field '{e.field_name}' not provided"
        )
    except EngineError as e:
        logger.warning(f"Checklist item '{item.question}' could not be evaluated: {e.message}")
        return ChecklistResult(item, ChecklistStatus.FAIL, f"EvaluationError: {e.message}")
    except Exception as e:
        logger.error(f"Error evaluating checklist item '{item.question}': {e}", exc_info=True)
        return ChecklistResult(
            item, ChecklistStatus.FAIL, f"EvaluationError: {type(e).__name__}: {e}"
        )

    status = ChecklistStatus.PASS if outcome else ChecklistStatus.FAIL
    return ChecklistResult(item, status)
