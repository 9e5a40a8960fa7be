"""Policy contract, registry and built-in policy types."""

from conform.policies.base import Policy, PolicyDecoder, PolicyRef, TasksView
from conform.policies.registry import PolicyRegistry, get_policy_registry

__all__ = [
    "Policy",
    "PolicyDecoder",
    "PolicyRef",
    "PolicyRegistry",
    "TasksView",
    "get_policy_registry",
]
