from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable

from conform.framework.errors import UnknownPolicyError
from conform.policies.base import PolicyRef
from conformkit.registry import Registry, UnknownEntryError


@dataclass(frozen=True)
class PolicyRegistry:
    _registry: Registry[PolicyRef]

    @classmethod
    def from_refs(cls, refs: Iterable[PolicyRef]) -> "PolicyRegistry":
        return cls(_registry=Registry.from_entries(refs, kind="policy"))

    def __contains__(self, policy_type: object) -> bool:
        return policy_type in self._registry

    def available(self) -> tuple[str, ...]:
        return self._registry.available()

    def describe(self) -> tuple[dict[str, Any], ...]:
        return self._registry.describe()

    def get(self, policy_type: str) -> PolicyRef:
        try:
            return self._registry.get(policy_type)
        except UnknownEntryError as exc:
            raise UnknownPolicyError(str(policy_type), suggestions=exc.suggestions) from exc


@lru_cache(maxsize=1)
def get_policy_registry() -> PolicyRegistry:
    # Single import point for the built-in policy types.
    from conform.policies import conventional_commit, required_stages, version  # noqa: PLC0415

    return PolicyRegistry.from_refs(
        [conventional_commit.POLICY, required_stages.POLICY, version.POLICY]
    )
