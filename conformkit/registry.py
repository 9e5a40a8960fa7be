from __future__ import annotations

import difflib
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Generic, Iterable, Mapping, Protocol, TypeVar


class RegistryEntry(Protocol):
    id: str
    doc: str | None


E = TypeVar("E", bound=RegistryEntry)


class UnknownEntryError(LookupError):
    """Raised when a registry lookup names an id that was never registered."""

    def __init__(self, kind: str, entry_id: str, *, suggestions: tuple[str, ...] = ()) -> None:
        self.kind = kind
        self.entry_id = entry_id
        self.suggestions = suggestions
        message = f"Unknown {kind}: {entry_id!r}"
        if suggestions:
            message += f" (did you mean: {', '.join(suggestions)})"
        super().__init__(message)


@dataclass(frozen=True)
class Registry(Generic[E]):
    """Immutable id -> entry lookup, built once and never mutated."""

    kind: str
    _by_id: Mapping[str, E]

    @classmethod
    def from_entries(cls, entries: Iterable[E], *, kind: str) -> "Registry[E]":
        by_id: dict[str, E] = {}
        for entry in entries:
            if entry.id in by_id:
                raise ValueError(f"Duplicate {kind} id: {entry.id}")
            by_id[entry.id] = entry
        return cls(kind=kind, _by_id=MappingProxyType(by_id))

    def __contains__(self, entry_id: object) -> bool:
        return isinstance(entry_id, str) and entry_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {"id": entry.id, "doc": entry.doc}
            for entry in sorted(self._by_id.values(), key=lambda e: e.id)
        )

    def get(self, entry_id: str) -> E:
        # Lookups are exact: ids are case sensitive and never trimmed.
        entry = self._by_id.get(entry_id) if isinstance(entry_id, str) else None
        if entry is None:
            raise UnknownEntryError(self.kind, str(entry_id), suggestions=self.suggest(entry_id))
        return entry

    def suggest(self, entry_id: Any, *, limit: int = 3) -> tuple[str, ...]:
        key = entry_id.strip() if isinstance(entry_id, str) else ""
        if not key or not self._by_id:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))
