from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Protocol

from conformkit.config_namespace import ConfigNamespace
from conformkit.engine import utc_now_iso8601

logger = logging.getLogger(__name__)

_SEMVER_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


@dataclass(frozen=True)
class Repository:
    branch: str | None = None
    sha: str | None = None
    tag: str | None = None
    is_dirty: bool = False
    message: str | None = None

    @property
    def is_tag(self) -> bool:
        return self.tag is not None


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: str | None
    original: str

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease else core


def parse_version(tag: str | None) -> Version | None:
    """Parse a semantic version tag (a leading `v` is allowed); `None` if it is not one."""

    if tag is None:
        return None
    match = _SEMVER_RE.match(tag.strip())
    if match is None:
        return None
    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        original=tag,
    )


@dataclass(frozen=True)
class Metadata:
    repository: Repository
    version: Version | None
    built: str
    variables: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.variables, MappingProxyType):
            object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def template_values(self) -> Mapping[str, Any]:
        return MappingProxyType(
            {
                "repository": self.repository,
                "version": self.version,
                "built": self.built,
                "variables": self.variables,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        repository = {f.name: getattr(self.repository, f.name) for f in fields(Repository)}
        repository["is_tag"] = self.repository.is_tag
        version = None
        if self.version is not None:
            version = {f.name: getattr(self.version, f.name) for f in fields(Version)}
        return {
            "repository": repository,
            "version": version,
            "built": self.built,
            "variables": dict(self.variables),
        }


class GitFacts(Protocol):
    def facts(self) -> dict[str, Any]:
        """Return repository facts keyed like the `Repository` fields."""


class GitClient:
    """Collects repository facts by shelling out to `git`."""

    def __init__(self, repo_dir: str | os.PathLike[str] | None = None):
        self._repo_dir = str(repo_dir) if repo_dir is not None else os.getcwd()

    def _git(self, *args: str) -> str | None:
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=self._repo_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            logger.warning("git executable not found; repository facts unavailable")
            return None
        if proc.returncode != 0:
            logger.debug("git %s exited %s: %s", " ".join(args), proc.returncode, proc.stderr.strip())
            return None
        return proc.stdout

    def facts(self) -> dict[str, Any]:
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD")
        sha = self._git("rev-parse", "--short", "HEAD")
        tag = self._git("describe", "--tags", "--exact-match", "HEAD")
        status = self._git("status", "--porcelain")
        message = self._git("log", "-1", "--format=%B")

        return {
            "branch": _clean(branch),
            "sha": _clean(sha),
            "tag": _clean(tag),
            "is_dirty": bool(status and status.strip()),
            "message": _clean(message),
        }


def _clean(output: str | None) -> str | None:
    if output is None:
        return None
    return output.strip() or None


@dataclass(frozen=True)
class MetadataDeclaration:
    """The `metadata` section of the configuration document."""

    git: bool = True
    repository: Mapping[str, Any] = field(default_factory=dict)
    variables: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_namespace(cls, ns: ConfigNamespace) -> "MetadataDeclaration":
        git = ns.get_bool("git", default=True)

        repo_ns = ns.namespace("repository", default=None)
        overrides: dict[str, Any] = {}
        for key in ("branch", "sha", "tag", "message"):
            if repo_ns.has(key):
                overrides[key] = repo_ns.get_str(key, default=None)
        if repo_ns.has("is_dirty"):
            overrides["is_dirty"] = repo_ns.get_bool("is_dirty")

        variables = ns.get_mapping("variables", default={})
        ns.assert_consumed()
        return cls(git=git, repository=overrides, variables=variables)


def collect_metadata(
    declaration: MetadataDeclaration,
    *,
    git: GitFacts | None = None,
    built: str | None = None,
) -> Metadata:
    """Build the run's single Metadata instance.

    Declared repository values win over collected git facts, field by field.
    """

    repository = Repository()
    if declaration.git:
        client = git if git is not None else GitClient()
        collected = client.facts()
        known = {f.name for f in fields(Repository)}
        repository = replace(repository, **{k: v for k, v in collected.items() if k in known})
        logger.debug("Collected git facts: %s", collected)

    if declaration.repository:
        repository = replace(repository, **dict(declaration.repository))

    return Metadata(
        repository=repository,
        version=parse_version(repository.tag),
        built=built or utc_now_iso8601(),
        variables=dict(declaration.variables),
    )
