"""Branch policy table.

Holds the built-in policies for the common branching model
(main/master, develop, feature/*, release/*, hotfix/*) and merges user
overrides by pattern key. Iteration order is insertion order: built-ins
first in declaration order, then user patterns that add new keys. A user
entry that reuses a built-in key replaces it in place.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from branchline.branching.patterns import BranchPattern
from branchline.schemas.branch import BranchPolicy, DeploymentStrategy

_FULL_PATH = ("dev", "sit", "uat", "prod")


def builtin_policies() -> dict[str, BranchPolicy]:
    """Create the built-in branch policy table."""
    mainline = BranchPolicy(
        environments=_FULL_PATH,
        auto_promote=frozenset({"dev", "sit"}),
        requires_approval=frozenset({"uat", "prod"}),
        deployment_strategy=DeploymentStrategy.BLUE_GREEN,
        quality_gate_required=True,
        security_scan_required=True,
        performance_test_required=True,
    )
    return {
        "master": mainline,
        "main": mainline,
        "develop": BranchPolicy(
            environments=("dev", "sit"),
            auto_promote=frozenset({"dev"}),
            requires_approval=frozenset({"sit"}),
            deployment_strategy=DeploymentStrategy.ROLLING_UPDATE,
            quality_gate_required=True,
            security_scan_required=True,
            performance_test_required=False,
        ),
        "feature/*": BranchPolicy(
            environments=("dev",),
            auto_promote=frozenset({"dev"}),
            requires_approval=frozenset(),
            deployment_strategy=DeploymentStrategy.ROLLING_UPDATE,
            quality_gate_required=False,
            security_scan_required=True,
            performance_test_required=False,
            ephemeral_environment=True,
        ),
        "release/*": BranchPolicy(
            environments=("dev", "sit", "uat"),
            auto_promote=frozenset({"dev", "sit"}),
            requires_approval=frozenset({"uat"}),
            deployment_strategy=DeploymentStrategy.BLUE_GREEN,
            quality_gate_required=True,
            security_scan_required=True,
            performance_test_required=True,
        ),
        "hotfix/*": BranchPolicy(
            environments=_FULL_PATH,
            auto_promote=frozenset({"dev"}),
            requires_approval=frozenset({"sit", "uat", "prod"}),
            deployment_strategy=DeploymentStrategy.BLUE_GREEN,
            quality_gate_required=True,
            security_scan_required=True,
            performance_test_required=True,
            fast_track=True,
        ),
    }


class BranchPolicyTable(Mapping[str, BranchPolicy]):
    """Ordered, read-only mapping from branch pattern to policy.

    Examples:
        >>> table = BranchPolicyTable()
        >>> list(table)[:2]
        ['master', 'main']
        >>> table.first_glob_match("release/1.2").fast_track
        False
    """

    def __init__(self, overrides: Mapping[str, BranchPolicy] | None = None) -> None:
        policies = builtin_policies()
        if overrides:
            policies.update(overrides)
        self._policies = policies
        compiled = [(BranchPattern(key), policy) for key, policy in policies.items()]
        self._globs = tuple((pattern, policy) for pattern, policy in compiled if pattern.is_glob)

    def __getitem__(self, key: str) -> BranchPolicy:
        return self._policies[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def first_glob_match(self, name: str) -> BranchPolicy | None:
        """Policy of the first glob pattern (in table order) matching ``name``."""
        for pattern, policy in self._globs:
            if pattern.matches(name):
                return policy
        return None

    @property
    def default_policy(self) -> BranchPolicy:
        """The designated default: the ``main`` policy (overridable, never removed)."""
        return self._policies["main"]


__all__ = ["BranchPolicyTable", "builtin_policies"]
