from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, TypeAlias

from conform.framework.errors import PolicyDecodeError
from conform.framework.metadata import Metadata
from conform.framework.pipeline import PipelineView, Task
from conform.framework.report import ComplianceReport
from conformkit.config_namespace import ConfigNamespace

TasksView: TypeAlias = Mapping[str, Task]


class Policy(Protocol):
    def compliance(
        self,
        metadata: Metadata,
        *,
        pipeline: PipelineView,
        tasks: TasksView,
    ) -> ComplianceReport:
        """Evaluate every check and return all violations; never mutates its inputs."""


class PolicyDecoder(Protocol):
    def __call__(self, spec: ConfigNamespace) -> Policy:
        ...


@dataclass(frozen=True)
class PolicyRef:
    """Registry entry: a policy type name bound to the decoder for its spec."""

    id: str
    decoder: PolicyDecoder
    doc: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise TypeError("PolicyRef.id must be a non-empty string")
        if not callable(self.decoder):
            raise TypeError(f"PolicyRef.decoder must be callable (policy={self.id})")
        if self.doc is not None and (not isinstance(self.doc, str) or not self.doc.strip()):
            raise TypeError("PolicyRef.doc must be a non-empty string or None")

    def decode(self, spec: Any, *, path: str = "spec") -> Policy:
        """Decode an untyped spec into a fresh policy instance.

        Shape mismatches, missing required fields and unknown keys all raise
        `PolicyDecodeError`; nothing falls back to a zero value silently.
        """

        try:
            ns = ConfigNamespace.from_value(spec, path=path)
            policy = self.decoder(ns)
            ns.assert_consumed()
        except (TypeError, ValueError) as exc:
            raise PolicyDecodeError(self.id, exc) from exc
        return policy
