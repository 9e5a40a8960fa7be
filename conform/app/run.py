"""Orchestrator: load -> enforce -> build -> execute, each phase gating the next."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from conform.foundation.config_io import DEFAULT_ENV_VAR, load_config
from conform.framework.config import ConformConfig
from conform.framework.enforcement import enforce
from conform.framework.metadata import GitClient, GitFacts, Metadata, collect_metadata
from conform.framework.pipeline import BuiltPipeline
from conform.framework.script import CommandRunner, ScriptContext
from conform.policies.registry import PolicyRegistry, get_policy_registry


@dataclass
class Conform:
    config: ConformConfig
    metadata: Metadata
    registry: PolicyRegistry
    logger: logging.Logger
    source: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        raw: Any,
        *,
        git: GitFacts | None = None,
        registry: PolicyRegistry | None = None,
        logger: logging.Logger | None = None,
        source: dict[str, Any] | None = None,
    ) -> "Conform":
        config = ConformConfig.from_dict(raw)
        metadata = collect_metadata(config.metadata, git=git)
        return cls(
            config=config,
            metadata=metadata,
            registry=registry or get_policy_registry(),
            logger=logger or logging.getLogger("conform"),
            source=dict(source or {}),
        )

    @classmethod
    def load(
        cls,
        config_path: str | os.PathLike[str] | None = None,
        *,
        git: GitFacts | None = None,
        registry: PolicyRegistry | None = None,
        logger: logging.Logger | None = None,
        env_var: str | None = DEFAULT_ENV_VAR,
        start_dir: str | os.PathLike[str] | None = None,
    ) -> "Conform":
        raw, source = load_config(config_path, env_var=env_var, start_dir=start_dir)
        log = logger or logging.getLogger("conform")
        log.info("Loaded config (%s): %s", source["mode"], ", ".join(source["paths"]))

        if git is None:
            repo_dir = source.get("repo_root") or os.path.dirname(source["paths"][0])
            git = GitClient(repo_dir)
        return cls.from_dict(raw, git=git, registry=registry, logger=log, source=source)

    def enforce(self) -> int:
        return enforce(
            self.config.policies,
            registry=self.registry,
            metadata=self.metadata,
            pipeline=self.config.pipeline,
            stages=self.config.stages,
            tasks=self.config.tasks,
            logger=self.logger,
        )

    def build(self) -> BuiltPipeline:
        return self.config.pipeline.build(
            self.metadata, self.config.stages, self.config.tasks, logger=self.logger
        )

    def execute(self, *, runner: CommandRunner | None = None) -> ScriptContext:
        return self.config.script.execute(self.metadata, runner=runner, logger=self.logger)

    def run(
        self,
        *,
        render_dir: str | os.PathLike[str] | None = None,
        runner: CommandRunner | None = None,
    ) -> BuiltPipeline:
        """Run every phase in order; any ConformError ends the run where it was raised."""

        evaluated = self.enforce()
        self.logger.info("All %d policies compliant", evaluated)

        built = self.build()
        if render_dir is not None:
            for path in built.write(render_dir):
                self.logger.info("Wrote %s", path)

        self.execute(runner=runner)
        return built
