"""
Error taxonomy for the guidance engine.

Every error carries a stable ``code`` so embedding code (the CLI, a service)
can branch on it without matching message text.

Recoverable at call time:
- UnknownDomain: the requested domain is not in the registry
- MissingField: a predicate referenced a field the caller did not supply
- EvaluationError: a single predicate failed while being evaluated

Load-time fatal (abort registry installation):
- InvalidTree / CycleDetected: malformed decision tree
- DuplicateRuleId: two guardrail rules share an id within one domain
- InvalidSource: any other malformed registry document
"""
from typing import Optional, Sequence


class EngineError(Exception):
    """Base class for all engine errors."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class UnknownDomain(EngineError):
    """Raised when a domain id is not present in the registry."""

    code = "UNKNOWN_DOMAIN"

    def __init__(self, domain: str, known: Sequence[str] = ()):
        self.domain = domain
        self.known = tuple(known)
        hint = f" Known domains: {', '.join(self.known)}." if self.known else ""
        super().__init__(f"Unknown domain '{domain}'.{hint}")


class MissingField(EngineError):
    """Raised when a predicate needs a field that the facts do not contain."""

    code = "MISSING_FIELD"

    def __init__(self, field_name: str, node_path: Optional[str] = None):
        self.field_name = field_name
        self.node_path = node_path
        location = f" at {node_path}" if node_path else ""
        super().__init__(
            f"Missing field '{field_name}'{location}; supply it and retry."
        )

    def at(self, node_path: str) -> "MissingField":
        """Return a copy of this error located at ``node_path``."""
        return MissingField(self.field_name, node_path)


class EvaluationError(EngineError):
    """Raised when a predicate fails for a reason other than a missing field."""

    code = "EVALUATION_ERROR"


class RegistryError(EngineError):
    """Base class for errors that abort a registry load."""

    code = "REGISTRY_ERROR"


class InvalidTree(RegistryError):
    code = "INVALID_TREE"


class CycleDetected(InvalidTree):
    """A decision tree revisits a node; it is a graph, not a tree."""

    code = "CYCLE_DETECTED"


class DuplicateRuleId(RegistryError):
    code = "DUPLICATE_RULE_ID"

    def __init__(self, domain: str, rule_id: str):
        self.domain = domain
        self.rule_id = rule_id
        super().__init__(f"Duplicate rule id '{rule_id}' in domain '{domain}'")


class InvalidSource(RegistryError):
    code = "INVALID_SOURCE"
