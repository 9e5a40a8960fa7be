"""`version`: tags on HEAD must be semantic versions."""

from __future__ import annotations

from dataclasses import dataclass

from conform.framework.metadata import Metadata
from conform.framework.pipeline import PipelineView
from conform.framework.report import ComplianceReport, ReportBuilder
from conform.policies.base import PolicyRef, TasksView
from conformkit.config_namespace import ConfigNamespace


@dataclass(frozen=True)
class VersionPolicy:
    require_tag: bool = False
    allow_prerelease: bool = True

    @classmethod
    def from_spec(cls, spec: ConfigNamespace) -> "VersionPolicy":
        return cls(
            require_tag=spec.get_bool("require_tag", default=False),
            allow_prerelease=spec.get_bool("allow_prerelease", default=True),
        )

    def compliance(
        self,
        metadata: Metadata,
        *,
        pipeline: PipelineView,
        tasks: TasksView,
    ) -> ComplianceReport:
        report = ReportBuilder()
        repository = metadata.repository

        if not repository.is_tag:
            report.check(not self.require_tag, "HEAD is not tagged")
        elif metadata.version is None:
            report.add(f"Tag {repository.tag!r} is not a valid semantic version")
        else:
            report.check(
                self.allow_prerelease or not metadata.version.is_prerelease,
                f"Tag {repository.tag!r} is a prerelease but prereleases are not allowed",
            )
        return report.build()


POLICY = PolicyRef(
    id="version",
    decoder=VersionPolicy.from_spec,
    doc="Tags on HEAD must parse as semantic versions (optionally require a tag or forbid prereleases).",
)
