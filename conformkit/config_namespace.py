"""Strict, path-aware parsing of untyped configuration values for `conformkit`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


@dataclass
class ConfigNamespace:
    """Typed accessors over a mapping with consumed-keys enforcement.

    Every accessor records the key as consumed. `assert_consumed()` then fails
    on any key nobody asked for, so typos in a spec surface as errors instead
    of being silently ignored.
    """

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def empty(cls, *, path: str) -> "ConfigNamespace":
        return cls({}, path=path)

    @classmethod
    def from_value(cls, raw: Any, *, path: str) -> "ConfigNamespace":
        """Wrap an untyped value; `None` is treated as an empty mapping."""

        if raw is None:
            return cls.empty(path=path)
        if not isinstance(raw, Mapping):
            raise TypeError(f"{path or '<root>'} must be a mapping (type={type(raw).__name__})")
        for key in raw.keys():
            if not isinstance(key, str):
                raise TypeError(
                    f"{path or '<root>'} keys must be strings (got {key!r})"
                )
        return cls(dict(raw), path=path)

    def _consume(self, key: str) -> None:
        self._consumed.add(key)

    def keys(self) -> tuple[str, ...]:
        return tuple(self.data.keys())

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(k for k in self.data.keys() if k not in self._consumed))

    def assert_consumed(self) -> None:
        unknown = list(self.unconsumed_keys())
        if unknown:
            path = self.path or "<root>"
            consumed = ", ".join(self.consumed_keys()) or "<none>"
            raise ValueError(
                f"Unknown config keys under {path}: {', '.join(unknown)} (consumed: {consumed})"
            )
        for child in self._children.values():
            child.assert_consumed()

    def _normalize_key(self, key: str) -> str:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        return key.strip()

    def _get_raw(self, key: str, *, default: Any) -> Any:
        normalized = self._normalize_key(key)
        if normalized in self._children:
            raise ValueError(
                f"{_join_path(self.path, normalized)} already accessed as a nested namespace"
            )

        if normalized not in self.data:
            if default is _MISSING:
                raise ValueError(f"Missing required config key: {_join_path(self.path, normalized)}")
            self._consume(normalized)
            return default

        self._consume(normalized)
        return self.data.get(normalized)

    def has(self, key: str) -> bool:
        return self._normalize_key(key) in self.data

    def get_raw(self, key: str, *, default: Any = _MISSING) -> Any:
        """Return the untyped value (consumed, but not validated)."""

        return self._get_raw(key, default=default)

    def namespace(
        self,
        key: str,
        *,
        default: Mapping[str, Any] | None | object = _MISSING,
    ) -> "ConfigNamespace":
        normalized = self._normalize_key(key)
        if normalized in self._children:
            return self._children[normalized]

        child_path = _join_path(self.path, normalized)
        raw = self.data.get(normalized) if normalized in self.data else _MISSING
        self._consume(normalized)

        if raw is _MISSING or raw is None:
            if default is _MISSING:
                raise ValueError(f"Missing required config namespace: {child_path}")
            if default is not None and not isinstance(default, Mapping):
                raise TypeError(f"default for {child_path} must be a mapping or None")
            child = ConfigNamespace(dict(default or {}), path=child_path)
            self._children[normalized] = child
            return child

        child = ConfigNamespace.from_value(raw, path=child_path)
        self._children[normalized] = child
        return child

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        if default is not _MISSING and not isinstance(default, bool):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be a boolean")

        value = self._get_raw(key, default=default)
        if not isinstance(value, bool):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a boolean (type={type(value).__name__})"
            )
        return value

    def get_int(
        self,
        key: str,
        *,
        default: int | object = _MISSING,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> int:
        if default is not _MISSING and (isinstance(default, bool) or not isinstance(default, int)):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be an int")

        raw = self._get_raw(key, default=default)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be an int (type={type(raw).__name__})"
            )
        value = int(raw)
        if min_value is not None and value < int(min_value):
            raise ValueError(
                f"{_join_path(self.path, key.strip())} must be >= {int(min_value)} (got {value})"
            )
        if max_value is not None and value > int(max_value):
            raise ValueError(
                f"{_join_path(self.path, key.strip())} must be <= {int(max_value)} (got {value})"
            )
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        allow_empty: bool = False,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        if default is not _MISSING and default is not None and not isinstance(default, str):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be a string or None")

        raw = self._get_raw(key, default=default)
        if raw is None:
            return None

        if not isinstance(raw, str):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a string (type={type(raw).__name__})"
            )
        value = raw.strip()
        if not value and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        if choices is not None:
            choice_set = {str(item).strip() for item in choices if str(item).strip()}
            if value not in choice_set:
                allowed = ", ".join(sorted(choice_set)) or "<none>"
                raise ValueError(
                    f"{_join_path(self.path, key.strip())} must be one of: {allowed} (got {value!r})"
                )
        return value

    def get_list_str(
        self,
        key: str,
        *,
        default: list[str] | tuple[str, ...] | object = _MISSING,
        allow_empty: bool = False,
    ) -> list[str]:
        if default is not _MISSING and not isinstance(default, (list, tuple)):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be a list[str]")

        raw = self._get_raw(key, default=default)
        if raw is default and default is not _MISSING:
            raw = list(default)  # type: ignore[arg-type]

        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a list[str] (type={type(raw).__name__})"
            )

        items: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str):
                raise TypeError(
                    f"{_join_path(self.path, key.strip())}[{idx}] must be a string (type={type(item).__name__})"
                )
            trimmed = item.strip()
            if not trimmed:
                raise ValueError(f"{_join_path(self.path, key.strip())}[{idx}] cannot be empty")
            items.append(trimmed)

        if not items and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        return items

    def get_list(
        self,
        key: str,
        *,
        default: list[Any] | tuple[Any, ...] | object = _MISSING,
        allow_empty: bool = True,
    ) -> list[Any]:
        """Parse a list of untyped items (element validation is left to the caller)."""

        if default is not _MISSING and not isinstance(default, (list, tuple)):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be a list")

        raw = self._get_raw(key, default=default)
        if raw is None and default is not _MISSING:
            raw = list(default)  # type: ignore[arg-type]
        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a list (type={type(raw).__name__})"
            )
        items = list(raw)
        if not items and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        return items

    def get_mapping(
        self,
        key: str,
        *,
        default: Mapping[str, Any] | object = _MISSING,
    ) -> dict[str, Any]:
        """Parse an untyped mapping value without consumed-keys tracking of its children."""

        if default is not _MISSING and not isinstance(default, Mapping):
            raise TypeError(f"{_join_path(self.path, key.strip())} default must be a mapping")

        raw = self._get_raw(key, default=default)
        if raw is None and default is not _MISSING:
            raw = default
        if not isinstance(raw, Mapping):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a mapping (type={type(raw).__name__})"
            )
        out: dict[str, Any] = {}
        for child_key, value in raw.items():
            if not isinstance(child_key, str):
                raise TypeError(
                    f"{_join_path(self.path, key.strip())} keys must be strings (got {child_key!r})"
                )
            out[child_key] = value
        return out
