"""
Process-wide rule registry.

A RuleRegistry is an immutable mapping of domain id to DomainEntry. The
active registry is published through a single reference swap:

- load_registry() builds and validates a registry off to the side
- install_registry() publishes it, or leaves the previous one active if
  loading fails
- get_registry() returns whatever is currently published, without locking

Readers therefore never see a partially loaded registry and never wait on
a writer.
"""
from importlib import resources
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
import logging
import threading

from ..errors import InvalidSource, UnknownDomain
from .loader import DomainEntry, parse_document, parse_text, read_sources


logger = logging.getLogger(__name__)


BUILTIN_PACKAGE = "guidance_engine.data"
BUILTIN_DIRECTORY = "domains"


class RuleRegistry:
    """Read-only store of decision trees, guardrail rules and checklists."""

    def __init__(self, entries: Optional[Mapping[str, DomainEntry]] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    @classmethod
    def load(cls, sources: Iterable[Any]) -> "RuleRegistry":
        return load_registry(sources)

    def get(self, domain: str) -> DomainEntry:
        """
        Look up a domain.

        Raises:
            UnknownDomain: if the domain is not registered
        """
        try:
            return self._entries[domain]
        except (KeyError, TypeError):
            raise UnknownDomain(str(domain), self.domains()) from None

    def domains(self) -> List[str]:
        return sorted(self._entries)

    def entries(self) -> Iterator[DomainEntry]:
        for domain in self.domains():
            yield self._entries[domain]

    def __contains__(self, domain: object) -> bool:
        return domain in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RuleRegistry(domains={self.domains()!r})"


def _build(documents: Iterable[Tuple[Any, str]]) -> RuleRegistry:
    entries: Dict[str, DomainEntry] = {}
    for document, origin in documents:
        entry = parse_document(document, origin)
        if entry.domain in entries:
            raise InvalidSource(
                f"{origin}: domain '{entry.domain}' is already defined in "
                f"{entries[entry.domain].source}"
            )
        entries[entry.domain] = entry
    return RuleRegistry(entries)


def load_registry(sources: Iterable[Any], include_builtin: bool = False) -> RuleRegistry:
    """
    Build a validated registry from source documents.

    Args:
        sources: File paths, directories, or parsed mappings
        include_builtin: If True, load the packaged domains first

    Returns:
        A new RuleRegistry; nothing is published

    Raises:
        RegistryError: on the first invalid document
    """
    def documents():
        if include_builtin:
            yield from builtin_documents()
        yield from read_sources(sources)

    registry = _build(documents())
    logger.debug(f"Loaded registry with {len(registry)} domain(s)")
    return registry


def builtin_documents() -> Iterator[Tuple[Any, str]]:
    """Yield the domain documents packaged with the engine."""
    directory = resources.files(BUILTIN_PACKAGE).joinpath(BUILTIN_DIRECTORY)
    for entry in sorted(directory.iterdir(), key=lambda e: e.name):
        if entry.name.endswith(('.yaml', '.yml', '.json')):
            origin = f"builtin:{entry.name}"
            yield parse_text(entry.read_text(encoding='utf-8'), origin), origin


def load_builtin_registry() -> RuleRegistry:
    return _build(builtin_documents())


_active_registry = RuleRegistry()
_install_lock = threading.Lock()


def get_registry() -> RuleRegistry:
    """Return the currently published registry."""
    return _active_registry


def install_registry(source: Any, include_builtin: bool = False) -> RuleRegistry:
    """
    Load and publish a registry atomically.

    Args:
        source: A RuleRegistry to publish, or sources accepted by load_registry
        include_builtin: Passed to load_registry when loading from sources

    Returns:
        The newly published registry

    Raises:
        RegistryError: if loading fails; the previously active registry
                       remains published
    """
    global _active_registry

    with _install_lock:
        if isinstance(source, RuleRegistry):
            registry = source
        else:
            registry = load_registry(source, include_builtin=include_builtin)
        _active_registry = registry

    logger.info(f"Installed registry with domains: {', '.join(registry.domains()) or 'none'}")
    return registry


def reset_registry() -> None:
    """Publish an empty registry."""
    install_registry(RuleRegistry())
