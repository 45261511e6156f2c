"""
Shared pytest fixtures for guidance engine tests.

This module provides small domain documents and registries so individual
test modules do not repeat tree and rule definitions.
"""
import copy

import pytest
import yaml

from guidance_engine.registry import (
    RuleRegistry,
    get_registry,
    install_registry,
    load_builtin_registry,
    load_registry,
)


RENDERING_DOC = {
    'version': 1,
    'domain': 'rendering-mode',
    'predicates': {
        'needs_seo': {'field': 'needsSEO', 'operator': 'eq', 'value': True},
    },
    'tree': {
        'name': 'Rendering mode selection',
        'root': {
            'if': {'field': 'contentChangeFrequency', 'operator': 'eq', 'value': 'realtime'},
            'then': {'recommend': 'SSR', 'rationale': 'Render per request.'},
            'else': {
                'cases': [
                    {
                        'if': {
                            'field': 'contentChangeFrequency',
                            'operator': 'in',
                            'value': ['rare', 'never'],
                        },
                        'then': {'recommend': 'SSG', 'caveats': ['Rebuild on change.']},
                    },
                ],
                'else': {'node': 'periodic'},
            },
        },
        'nodes': {
            'periodic': {
                'if': {'ref': 'needs_seo'},
                'then': {'recommend': 'ISR'},
                'else': {'recommend': 'CSR'},
            },
        },
    },
    'rules': [],
    'checklist': [],
}


CACHING_DOC = {
    'version': 1,
    'domain': 'build-caching',
    'tree': {
        'root': {'recommend': '[name].[contenthash].js'},
    },
    'rules': [
        {
            'id': 'contenthash-filenames',
            'severity': 'MUST',
            'predicate': {'field': 'usesContentHash', 'operator': 'eq', 'value': True},
            'message': 'MUST use contenthash for caching (usesContentHash={usesContentHash})',
        },
    ],
    'checklist': [],
}


REVIEW_DOC = {
    'version': 1,
    'domain': 'code-review',
    'tree': {'root': {'recommend': 'Review'}},
    'rules': [
        {
            'id': 'no-console-log',
            'severity': 'NEVER',
            'predicate': {'field': 'hasConsoleLog', 'operator': 'eq', 'value': True},
            'message': 'NEVER ship console.log statements',
        },
        {
            'id': 'typed-props',
            'severity': 'SHOULD',
            'predicate': {'field': 'propsTyped', 'operator': 'eq', 'value': True},
            'message': 'Component props SHOULD be typed',
        },
    ],
    'checklist': [
        {
            'category': 'Quality',
            'question': 'Is lint clean?',
            'predicate': {'field': 'lintErrors', 'operator': 'lt', 'value': 1},
        },
        {
            'category': 'Design',
            'question': 'Does the naming match the domain language?',
        },
    ],
}


@pytest.fixture(autouse=True)
def restore_active_registry():
    """Keep tests that install a registry from leaking it into other tests."""
    previous = get_registry()
    yield
    install_registry(previous)


@pytest.fixture
def rendering_doc():
    return copy.deepcopy(RENDERING_DOC)


@pytest.fixture
def caching_doc():
    return copy.deepcopy(CACHING_DOC)


@pytest.fixture
def review_doc():
    return copy.deepcopy(REVIEW_DOC)


@pytest.fixture
def registry(rendering_doc, caching_doc, review_doc) -> RuleRegistry:
    """Registry with the three test domains."""
    return load_registry([rendering_doc, caching_doc, review_doc])


@pytest.fixture
def builtin_registry() -> RuleRegistry:
    return load_builtin_registry()


@pytest.fixture
def write_yaml(tmp_path):
    """Write a mapping to a YAML file under tmp_path and return its path."""
    def _write(name, data):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path
    return _write
