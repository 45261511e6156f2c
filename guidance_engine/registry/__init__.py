"""
Rule registry.

Loads versioned domain documents once, validates them eagerly and publishes
an immutable registry that both engines read from.
"""
from .loader import DomainEntry, parse_document, read_sources
from .registry import (
    RuleRegistry,
    builtin_documents,
    get_registry,
    install_registry,
    load_builtin_registry,
    load_registry,
    reset_registry,
)


__all__ = [
    'DomainEntry',
    'parse_document',
    'read_sources',
    'RuleRegistry',
    'builtin_documents',
    'get_registry',
    'install_registry',
    'load_builtin_registry',
    'load_registry',
    'reset_registry',
]
