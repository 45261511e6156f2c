"""
Immutable fact mappings fed to the engines.

A Situation describes the context a recommendation is requested for; a
CandidateArtifact describes something being validated. Both are flat,
read-only mappings of field name to a scalar value.
"""
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator

from .errors import MissingField


SCALAR_TYPES = (str, int, float, bool, type(None))


class Facts(Mapping):
    """Read-only mapping of field name to scalar value."""

    __slots__ = ('_data',)

    def __init__(self, data: Mapping = None, **fields: Any):
        merged: Dict[str, Any] = dict(data or {})
        merged.update(fields)

        for key, value in merged.items():
            if not isinstance(key, str) or not key:
                raise TypeError(f"Field names must be non-empty strings, got {key!r}")
            if not isinstance(value, SCALAR_TYPES):
                raise TypeError(
                    f"Field '{key}' has unsupported type {type(value).__name__}; "
                    f"expected string, number, boolean or null"
                )

        object.__setattr__(self, '_data', MappingProxyType(merged))

    @classmethod
    def coerce(cls, value: Any) -> "Facts":
        """Wrap a plain mapping, passing through instances of this class."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise TypeError(f"{cls.__name__} must be a mapping, got {type(value).__name__}")
        return cls(value)

    def require(self, field_name: str) -> Any:
        """Return a field's value or raise MissingField."""
        try:
            return self._data[field_name]
        except KeyError:
            raise MissingField(field_name) from None

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self):
        return hash(frozenset(self._data.items()))

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self._data) == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self._data)!r})"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class Situation(Facts):
    """Structured facts about the context of a recommendation request."""

    __slots__ = ()


class CandidateArtifact(Facts):
    """Structured facts about the code or config being validated."""

    __slots__ = ()
