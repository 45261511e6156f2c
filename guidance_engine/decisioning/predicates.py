"""
Condition predicates evaluated against Situation / CandidateArtifact facts.

Predicates use a small declarative language:

    {field: needsSEO, operator: eq, value: true}
    {all: [<predicate>, ...]} | {any: [<predicate>, ...]} | {not: <predicate>}

plus named Python callables for rule sets built in code. Every predicate
knows which fields it reads, so missing input is reported as a MissingField
error instead of being silently defaulted.

Predicates compare by identity: a predicate shared between nodes is the same
object everywhere it is referenced.
"""
from abc import ABC, abstractmethod
from enum import Enum
from numbers import Number
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from ..errors import EngineError, EvaluationError, MissingField
from ..facts import SCALAR_TYPES


class Operator(Enum):
    """Comparison operators supported in predicate expressions."""
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    IN = "in"
    EXISTS = "exists"


def _same(actual: Any, expected: Any) -> bool:
    # Keep True from matching 1 and False from matching 0
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


class ConditionPredicate(ABC):
    """A boolean test over a mapping of facts."""

    name: Optional[str] = None

    @abstractmethod
    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        """
        Evaluate the predicate.

        Raises:
            MissingField: if a referenced field is absent from ``facts``
            EvaluationError: if the comparison cannot be computed
        """

    @abstractmethod
    def fields(self) -> Tuple[str, ...]:
        """Field names this predicate reads, in first-seen order."""

    @abstractmethod
    def describe(self) -> str:
        """Stable, human-readable rendering of the predicate."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass

    @property
    def label(self) -> str:
        return self.name or self.describe()

    def _freeze(self) -> None:
        object.__setattr__(self, '_frozen', True)

    def __setattr__(self, name, value):
        # Attributes are set in __init__ only
        if getattr(self, '_frozen', False):
            raise AttributeError(f"{type(self).__name__} is immutable")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"


class Comparison(ConditionPredicate):
    """Single-field comparison: ``field operator value``."""

    def __init__(
        self,
        field: str,
        operator: Any,
        value: Any = None,
        name: Optional[str] = None
    ):
        if not isinstance(field, str) or not field:
            raise ValueError("Predicate field must be a non-empty string")

        try:
            op = operator if isinstance(operator, Operator) else Operator(operator)
        except ValueError:
            allowed = ', '.join(o.value for o in Operator)
            raise ValueError(
                f"Unknown operator '{operator}' for field '{field}' (allowed: {allowed})"
            ) from None

        if op is Operator.IN:
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"Operator 'in' on '{field}' needs a list value")
            value = tuple(value)
            if not all(isinstance(v, SCALAR_TYPES) for v in value):
                raise ValueError(f"Operator 'in' on '{field}' accepts scalar values only")
        elif op in (Operator.GT, Operator.LT):
            if not _is_number(value):
                raise ValueError(f"Operator '{op.value}' on '{field}' needs a numeric value")
        elif op is Operator.EXISTS:
            value = True if value is None else value
            if not isinstance(value, bool):
                raise ValueError(f"Operator 'exists' on '{field}' takes true or false")
        elif not isinstance(value, SCALAR_TYPES):
            raise ValueError(f"Operator '{op.value}' on '{field}' needs a scalar value")

        self.field = field
        self.operator = op
        self.value = value
        self.name = name
        self._freeze()

    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        if self.operator is Operator.EXISTS:
            present = facts.get(self.field) is not None
            return present is self.value

        if self.field not in facts:
            raise MissingField(self.field)
        actual = facts[self.field]

        if self.operator is Operator.EQ:
            return _same(actual, self.value)
        if self.operator is Operator.NEQ:
            return not _same(actual, self.value)
        if self.operator is Operator.IN:
            return any(_same(actual, candidate) for candidate in self.value)

        if not _is_number(actual):
            raise EvaluationError(
                f"Field '{self.field}' is {actual!r}; operator '{self.operator.value}' "
                f"needs a number"
            )
        if self.operator is Operator.GT:
            return actual > self.value
        return actual < self.value

    def fields(self) -> Tuple[str, ...]:
        return (self.field,)

    def describe(self) -> str:
        if self.operator is Operator.EXISTS:
            return f"{self.field} exists" if self.value else f"{self.field} is absent"
        if self.operator is Operator.IN:
            return f"{self.field} in {list(self.value)!r}"
        return f"{self.field} {self.operator.value} {self.value!r}"

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {'field': self.field, 'operator': self.operator.value, 'value': value}


class _Compound(ConditionPredicate):
    keyword = ""

    def __init__(self, predicates: Iterable[ConditionPredicate], name: Optional[str] = None):
        self.predicates = tuple(predicates)
        if not self.predicates:
            raise ValueError(f"'{self.keyword}' needs at least one predicate")
        self.name = name
        self._freeze()

    def fields(self) -> Tuple[str, ...]:
        seen = []
        for predicate in self.predicates:
            for field_name in predicate.fields():
                if field_name not in seen:
                    seen.append(field_name)
        return tuple(seen)

    def to_dict(self) -> Dict[str, Any]:
        return {self.keyword: [p.to_dict() for p in self.predicates]}


class AllOf(_Compound):
    keyword = "all"

    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        return all(p.evaluate(facts) for p in self.predicates)

    def describe(self) -> str:
        return "(" + " and ".join(p.label for p in self.predicates) + ")"


class AnyOf(_Compound):
    keyword = "any"

    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        return any(p.evaluate(facts) for p in self.predicates)

    def describe(self) -> str:
        return "(" + " or ".join(p.label for p in self.predicates) + ")"


class Not(ConditionPredicate):
    def __init__(self, predicate: ConditionPredicate, name: Optional[str] = None):
        self.predicate = predicate
        self.name = name
        self._freeze()

    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        return not self.predicate.evaluate(facts)

    def fields(self) -> Tuple[str, ...]:
        return self.predicate.fields()

    def describe(self) -> str:
        return f"not {self.predicate.label}"

    def to_dict(self) -> Dict[str, Any]:
        return {'not': self.predicate.to_dict()}


class CallablePredicate(ConditionPredicate):
    """
    Wraps a pure Python function of the facts.

    ``field_names`` declares what the function reads; they are checked for
    presence before the function runs so a missing input surfaces as
    MissingField rather than a KeyError from inside the function.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[Mapping[str, Any]], bool],
        field_names: Iterable[str] = ()
    ):
        if not name:
            raise ValueError("Callable predicates must be named")
        self.name = name
        self.func = func
        self.field_names = tuple(field_names)
        self._freeze()

    def evaluate(self, facts: Mapping[str, Any]) -> bool:
        for field_name in self.field_names:
            if field_name not in facts:
                raise MissingField(field_name)
        try:
            return bool(self.func(facts))
        except EngineError:
            raise
        except KeyError as e:
            raise MissingField(str(e.args[0]) if e.args else self.name) from e
        except Exception as e:
            raise EvaluationError(f"Predicate '{self.name}' raised {type(e).__name__}: {e}") from e

    def fields(self) -> Tuple[str, ...]:
        return self.field_names

    def describe(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {'callable': self.name, 'fields': list(self.field_names)}


def parse_predicate(
    expr: Any,
    shared: Optional[Mapping[str, ConditionPredicate]] = None
) -> ConditionPredicate:
    """
    Build a predicate from its declarative form.

    Args:
        expr: Mapping in one of the forms listed in the module docstring,
              ``{ref: name}``, or a bare string naming a shared predicate
        shared: Named predicates available for reference

    Raises:
        ValueError: if the expression is malformed or references an
                    unknown shared predicate
    """
    shared = shared or {}

    if isinstance(expr, ConditionPredicate):
        return expr

    if isinstance(expr, str):
        expr = {'ref': expr}

    if not isinstance(expr, Mapping):
        raise ValueError(f"Predicate must be a mapping, got {type(expr).__name__}")

    if 'ref' in expr:
        ref = expr['ref']
        if not isinstance(ref, str) or ref not in shared:
            raise ValueError(f"Unknown predicate reference '{ref}'")
        return shared[ref]

    name = expr.get('name')

    if 'all' in expr:
        return AllOf([parse_predicate(p, shared) for p in _as_list(expr['all'], 'all')], name=name)
    if 'any' in expr:
        return AnyOf([parse_predicate(p, shared) for p in _as_list(expr['any'], 'any')], name=name)
    if 'not' in expr:
        return Not(parse_predicate(expr['not'], shared), name=name)

    unknown = set(expr) - {'field', 'operator', 'value', 'name'}
    if unknown:
        raise ValueError(f"Unknown predicate keys: {', '.join(sorted(unknown))}")
    if 'field' not in expr or 'operator' not in expr:
        raise ValueError("Predicate needs 'field' and 'operator'")

    return Comparison(expr['field'], expr['operator'], expr.get('value'), name=name)


def _as_list(value: Any, keyword: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{keyword}' takes a list of predicates")
    return list(value)
