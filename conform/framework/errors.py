"""Error taxonomy for a conform run.

Every error is terminal for the run; the CLI is the only place that turns one
into a process exit status.
"""

from __future__ import annotations

from typing import Sequence


class ConformError(Exception):
    """Base class for every failure that aborts a run."""


class ConfigLoadError(ConformError):
    """The configuration document is missing, unparsable or malformed."""


class UnknownPolicyError(ConformError):
    def __init__(self, policy_type: str, *, suggestions: Sequence[str] = ()) -> None:
        self.policy_type = policy_type
        self.suggestions = tuple(suggestions)
        message = f"Policy {policy_type!r} is not defined"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)})"
        super().__init__(message)


class PolicyDecodeError(ConformError):
    def __init__(self, policy_type: str, cause: BaseException) -> None:
        self.policy_type = policy_type
        self.cause = cause
        super().__init__(f"Invalid spec for policy {policy_type!r}: {cause}")


class PolicyEvaluationError(ConformError):
    """A policy raised or produced an unusable report while being evaluated."""

    def __init__(self, policy_type: str, cause: BaseException) -> None:
        self.policy_type = policy_type
        self.cause = cause
        super().__init__(f"Policy {policy_type!r} could not be evaluated: {cause}")


class PolicyViolationError(ConformError):
    def __init__(self, policy_type: str, errors: Sequence[str]) -> None:
        self.policy_type = policy_type
        self.errors = tuple(errors)
        super().__init__(
            f"Violation of policy {policy_type!r} ({len(self.errors)} violation(s))"
        )


class PipelineReferenceError(ConformError):
    """A pipeline or stage names a stage/task absent from its lookup mapping."""

    def __init__(self, kind: str, name: str, *, referenced_by: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.referenced_by = referenced_by
        message = f"Unresolved {kind} reference: {name!r}"
        if referenced_by:
            message += f" (referenced by {referenced_by})"
        super().__init__(message)


class TemplateRenderError(ConformError):
    def __init__(self, label: str, cause: BaseException) -> None:
        self.label = label
        self.cause = cause
        super().__init__(f"Cannot render {label}: {cause}")


class ScriptStepError(ConformError):
    def __init__(self, index: int, name: str, cause: BaseException) -> None:
        self.index = index
        self.name = name
        self.cause = cause
        super().__init__(f"Script step {index} ({name}) failed: {cause}")


__all__ = [
    "ConfigLoadError",
    "ConformError",
    "PipelineReferenceError",
    "PolicyDecodeError",
    "PolicyEvaluationError",
    "PolicyViolationError",
    "ScriptStepError",
    "TemplateRenderError",
    "UnknownPolicyError",
]
