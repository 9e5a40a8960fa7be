"""Enforcement loop: evaluates declared policies in order and stops at the first failure."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Iterator, Sequence

from conform.framework.config import PolicyDeclaration
from conform.framework.errors import PolicyEvaluationError, PolicyViolationError
from conform.framework.metadata import Metadata
from conform.framework.pipeline import Pipeline, Stage, Task
from conform.policies.registry import PolicyRegistry


def enforce(
    declarations: Sequence[PolicyDeclaration],
    *,
    registry: PolicyRegistry,
    metadata: Metadata,
    pipeline: Pipeline,
    stages: Mapping[str, Stage],
    tasks: Mapping[str, Task],
    logger: logging.Logger | None = None,
) -> int:
    """Enforce every declaration; returns the number of policies evaluated.

    Raises UnknownPolicyError, PolicyDecodeError, PolicyEvaluationError or
    PolicyViolationError for the first declaration that fails; later
    declarations are never looked at.
    """

    log = logger or logging.getLogger(__name__)
    pipeline_view = pipeline.view(stages)
    tasks_view = MappingProxyType(dict(tasks))

    for idx, declaration in enumerate(declarations):
        ref = registry.get(declaration.type)
        policy = ref.decode(declaration.spec, path=f"policies[{idx}].spec")

        try:
            report = policy.compliance(metadata, pipeline=pipeline_view, tasks=tasks_view)
        except (TypeError, ValueError) as exc:
            raise PolicyEvaluationError(declaration.type, exc) from exc
        if not report.valid:
            log.error(
                "Policy %s failed with %d violation(s)", declaration.type, len(report.errors)
            )
            raise PolicyViolationError(declaration.type, report.errors)

        log.info("Policy %s: compliant", declaration.type)

    return len(declarations)


def format_violation(exc: PolicyViolationError) -> Iterator[str]:
    yield f'Violation of policy "{exc.policy_type}":'
    for i, message in enumerate(exc.errors):
        yield f"\tViolation {i}: {message}"
