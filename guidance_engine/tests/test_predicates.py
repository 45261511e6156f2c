"""
Tests for condition predicates.

Validates operator semantics, missing-field handling and the declarative
predicate parser.
"""
import pytest

from guidance_engine.decisioning import (
    AllOf,
    AnyOf,
    CallablePredicate,
    Comparison,
    Not,
    Operator,
    parse_predicate,
)
from guidance_engine.errors import EvaluationError, MissingField
from guidance_engine.facts import Situation


class TestComparison:
    """Test single-field comparisons."""

    def test_eq_and_neq(self):
        facts = Situation({'framework': 'angular'})

        assert Comparison('framework', 'eq', 'angular').evaluate(facts) is True
        assert Comparison('framework', 'neq', 'angular').evaluate(facts) is False
        assert Comparison('framework', Operator.NEQ, 'react').evaluate(facts) is True

    def test_eq_does_not_confuse_booleans_and_numbers(self):
        facts = Situation({'flag': True, 'count': 1})

        assert Comparison('flag', 'eq', 1).evaluate(facts) is False
        assert Comparison('count', 'eq', True).evaluate(facts) is False
        assert Comparison('flag', 'eq', True).evaluate(facts) is True

    def test_gt_and_lt(self):
        facts = Situation({'lcpMs': 1800})

        assert Comparison('lcpMs', 'lt', 2500).evaluate(facts) is True
        assert Comparison('lcpMs', 'gt', 2500).evaluate(facts) is False

    def test_gt_on_non_number_raises_evaluation_error(self):
        facts = Situation({'lcpMs': 'fast'})

        with pytest.raises(EvaluationError):
            Comparison('lcpMs', 'gt', 100).evaluate(facts)

    def test_in(self):
        predicate = Comparison('freq', 'in', ['rare', 'never'])

        assert predicate.evaluate({'freq': 'rare'}) is True
        assert predicate.evaluate({'freq': 'daily'}) is False
        assert predicate.value == ('rare', 'never')

    def test_exists_never_raises(self):
        predicate = Comparison('token', 'exists')

        assert predicate.evaluate({}) is False
        assert predicate.evaluate({'token': None}) is False
        assert predicate.evaluate({'token': 0}) is True
        assert Comparison('token', 'exists', False).evaluate({}) is True

    def test_missing_field_raises(self):
        with pytest.raises(MissingField) as exc_info:
            Comparison('needsSEO', 'eq', True).evaluate({})

        assert exc_info.value.field_name == 'needsSEO'
        assert exc_info.value.code == 'MISSING_FIELD'

    @pytest.mark.parametrize('operator,value', [
        ('contains', 'x'),
        ('in', 'rare'),
        ('gt', 'ten'),
        ('gt', True),
        ('exists', 'yes'),
        ('eq', ['a']),
    ])
    def test_invalid_operand_shapes_rejected(self, operator, value):
        with pytest.raises(ValueError):
            Comparison('field', operator, value)

    def test_attributes_cannot_change_after_construction(self):
        predicate = Comparison('freq', 'eq', 'rare')

        with pytest.raises(AttributeError):
            predicate.value = 'never'
        with pytest.raises(AttributeError):
            CallablePredicate('big', lambda f: True).name = 'small'

    def test_describe_is_stable(self):
        assert Comparison('freq', 'eq', 'rare').describe() == "freq eq 'rare'"
        assert Comparison('freq', 'in', ['a', 'b']).describe() == "freq in ['a', 'b']"
        assert Comparison('token', 'exists').describe() == "token exists"


class TestCompound:
    """Test all/any/not combinators."""

    def test_all_any_not(self):
        a = Comparison('a', 'eq', 1)
        b = Comparison('b', 'eq', 2)
        facts = {'a': 1, 'b': 3}

        assert AllOf([a, b]).evaluate(facts) is False
        assert AnyOf([a, b]).evaluate(facts) is True
        assert Not(b).evaluate(facts) is True

    def test_fields_are_deduplicated_in_order(self):
        predicate = AllOf([
            Comparison('a', 'eq', 1),
            AnyOf([Comparison('b', 'eq', 1), Comparison('a', 'gt', 0)]),
        ])

        assert predicate.fields() == ('a', 'b')

    def test_empty_compound_rejected(self):
        with pytest.raises(ValueError):
            AllOf([])


class TestCallablePredicate:
    """Test Python function predicates."""

    def test_declared_fields_checked_first(self):
        predicate = CallablePredicate('big', lambda f: f['size'] > 10, ['size'])

        with pytest.raises(MissingField):
            predicate.evaluate({})
        assert predicate.evaluate({'size': 11}) is True

    def test_exceptions_become_evaluation_errors(self):
        predicate = CallablePredicate('broken', lambda f: 1 / 0)

        with pytest.raises(EvaluationError) as exc_info:
            predicate.evaluate({})
        assert 'ZeroDivisionError' in exc_info.value.message


class TestParsePredicate:
    """Test the declarative predicate parser."""

    def test_parses_comparison(self):
        predicate = parse_predicate({'field': 'x', 'operator': 'gt', 'value': 3})

        assert isinstance(predicate, Comparison)
        assert predicate.operator is Operator.GT

    def test_parses_nested_compound(self):
        predicate = parse_predicate({
            'any': [
                {'field': 'a', 'operator': 'eq', 'value': True},
                {'not': {'field': 'b', 'operator': 'exists'}},
            ]
        })

        assert isinstance(predicate, AnyOf)
        assert predicate.evaluate({'a': False}) is True

    def test_reference_returns_shared_object(self):
        shared = {'seo': Comparison('needsSEO', 'eq', True, name='seo')}

        assert parse_predicate({'ref': 'seo'}, shared) is shared['seo']
        assert parse_predicate('seo', shared) is shared['seo']

    def test_unknown_reference_rejected(self):
        with pytest.raises(ValueError, match="Unknown predicate reference"):
            parse_predicate({'ref': 'nope'}, {})

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="Unknown predicate keys"):
            parse_predicate({'field': 'x', 'operator': 'eq', 'value': 1, 'script': 'rm'})

    def test_to_dict_round_trip(self):
        expr = {'field': 'freq', 'operator': 'in', 'value': ['rare', 'never']}

        assert parse_predicate(expr).to_dict() == expr
