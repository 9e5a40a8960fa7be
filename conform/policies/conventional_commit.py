"""`conventionalCommit`: the HEAD commit message must follow Conventional Commits."""

from __future__ import annotations

import re
from dataclasses import dataclass

from conform.framework.metadata import Metadata
from conform.framework.pipeline import PipelineView
from conform.framework.report import ComplianceReport, ReportBuilder
from conform.policies.base import PolicyRef, TasksView
from conformkit.config_namespace import ConfigNamespace

DEFAULT_MAX_HEADER_LENGTH = 72

HEADER_RE = re.compile(
    r"^(?P<type>\w+)(?:\((?P<scope>[^()]*)\))?(?P<breaking>!)?: (?P<description>.*)$"
)


@dataclass(frozen=True)
class ConventionalCommit:
    types: tuple[str, ...]
    scopes: tuple[str, ...] = ()
    max_header_length: int = DEFAULT_MAX_HEADER_LENGTH
    require_scope: bool = False

    @classmethod
    def from_spec(cls, spec: ConfigNamespace) -> "ConventionalCommit":
        return cls(
            types=tuple(spec.get_list_str("types")),
            scopes=tuple(spec.get_list_str("scopes", default=(), allow_empty=True)),
            max_header_length=spec.get_int(
                "max_header_length", default=DEFAULT_MAX_HEADER_LENGTH, min_value=1
            ),
            require_scope=spec.get_bool("require_scope", default=False),
        )

    def compliance(
        self,
        metadata: Metadata,
        *,
        pipeline: PipelineView,
        tasks: TasksView,
    ) -> ComplianceReport:
        report = ReportBuilder()

        message = metadata.repository.message
        if not message or not message.strip():
            report.add("Commit message is unavailable")
            return report.build()

        lines = message.strip("\n").splitlines()
        header = lines[0]

        report.check(
            len(header) <= self.max_header_length,
            f"Commit header is {len(header)} characters (max {self.max_header_length})",
        )
        if len(lines) > 1:
            report.check(
                not lines[1].strip(),
                "Commit header must be separated from the body by a blank line",
            )

        match = HEADER_RE.match(header)
        if match is None:
            report.add(f"Invalid commit format: {header!r}")
            return report.build()

        commit_type = match.group("type")
        report.check(
            commit_type in self.types,
            f"Invalid type {commit_type!r}: allowed types are {', '.join(self.types)}",
        )

        scope = match.group("scope")
        if scope is None or not scope.strip():
            report.check(not self.require_scope, "Commit scope is required")
        elif self.scopes:
            report.check(
                scope in self.scopes,
                f"Invalid scope {scope!r}: allowed scopes are {', '.join(self.scopes)}",
            )

        description = match.group("description").strip()
        if not description:
            report.add("Commit description cannot be empty")
        else:
            report.check(
                not description.endswith("."),
                "Commit description must not end with a period",
            )

        return report.build()


POLICY = PolicyRef(
    id="conventionalCommit",
    decoder=ConventionalCommit.from_spec,
    doc="HEAD commit message must follow the Conventional Commits header format.",
)
