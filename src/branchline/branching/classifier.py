"""Branch classification and policy resolution.

Maps a raw branch name to a ``BranchType`` and resolves the applicable
``BranchPolicy`` with a fixed precedence:

1. exact key match in the policy table,
2. first glob pattern (in table order) matching the whole name,
3. the policy keyed by the branch type,
4. the default (``main``) policy.

Policy resolution never raises. Docker tags and ephemeral environment names
are pure functions of the branch info and build number.

Example:
    >>> classifier = BranchClassifier()
    >>> classifier.resolve_policy("release/2.0.0").deployment_strategy.value
    'blue-green'
    >>> classify_type("origin/hotfix/1.2.1")
    <BranchType.HOTFIX: 'hotfix'>
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from branchline.branching.policies import BranchPolicyTable
from branchline.branching.scm import SourceControl
from branchline.errors import PolicyViolationError
from branchline.schemas.branch import (
    BranchInfo,
    BranchPolicy,
    BranchType,
    BuildConfiguration,
    CommitMetadata,
    DeploymentStrategy,
)
from branchline.schemas.config import GlobalConfig
from branchline.telemetry import create_span

logger = structlog.get_logger(__name__)

REMOTE_PREFIX = "origin/"
UNKNOWN = "unknown"
DEFAULT_BUILD_NUMBER = "latest"

_PREFIX_TYPES = (
    ("feature/", BranchType.FEATURE),
    ("release/", BranchType.RELEASE),
    ("hotfix/", BranchType.HOTFIX),
    ("bugfix/", BranchType.BUGFIX),
)
_UNSAFE_TAG_CHARS = re.compile(r"[^a-z0-9]")


def normalize_branch_name(raw: str) -> str:
    """Strip a single leading ``origin/`` from a raw branch ref."""
    if raw.startswith(REMOTE_PREFIX):
        return raw[len(REMOTE_PREFIX) :]
    return raw


def classify_type(name: str) -> BranchType:
    """Classify a branch name. Case-sensitive, prefix based.

    Examples:
        >>> classify_type("master")
        <BranchType.MAIN: 'main'>
        >>> classify_type("Feature/x")
        <BranchType.CUSTOM: 'custom'>
    """
    name = normalize_branch_name(name)
    if name in ("main", "master"):
        return BranchType.MAIN
    if name in ("develop", "dev"):
        return BranchType.DEVELOP
    for prefix, branch_type in _PREFIX_TYPES:
        if name.startswith(prefix):
            return branch_type
    return BranchType.CUSTOM


def resolve_policy(name: str, table: BranchPolicyTable) -> BranchPolicy:
    """Resolve the policy for a branch name. Never raises.

    Args:
        name: Branch name (``origin/`` prefix allowed).
        table: Policy table to consult.

    Returns:
        The matching policy, or the table's default policy.
    """
    name = normalize_branch_name(name)

    if name in table:
        return table[name]

    glob_match = table.first_glob_match(name)
    if glob_match is not None:
        return glob_match

    branch_type = classify_type(name)
    if branch_type.value in table:
        return table[branch_type.value]

    logger.warning(
        "branch_policy_fallback",
        branch=name,
        branch_type=branch_type.value,
        message=f"No specific configuration found for branch {name}, using main policy",
    )
    return table.default_policy


def sanitize_tag_component(value: str) -> str:
    """Lower-case ``value`` and replace every non ``[a-z0-9]`` character with ``-``."""
    return _UNSAFE_TAG_CHARS.sub("-", value.lower())


def compute_docker_tag(info: BranchInfo, build_number: str | int = DEFAULT_BUILD_NUMBER) -> str:
    """Compute a deterministic, tag-safe Docker tag for a branch build.

    The result depends only on the branch name, branch type and build
    number, and contains only ``[a-z0-9-]``.

    Examples:
        >>> info = BranchClassifier().branch_info(
        ...     CommitMetadata(name="feature/User_Auth", commit_hash="abc123def456")
        ... )
        >>> compute_docker_tag(info, 42)
        'feature-user-auth-42'
    """
    build = sanitize_tag_component(str(build_number))
    name = info.name

    if info.branch_type is BranchType.MAIN:
        return build
    if info.branch_type is BranchType.DEVELOP:
        return f"dev-{build}"
    if info.branch_type is BranchType.FEATURE:
        suffix = sanitize_tag_component(name[len("feature/") :])
        return f"feature-{suffix}-{build}"
    if info.branch_type is BranchType.RELEASE:
        version = sanitize_tag_component(name[len("release/") :])
        return f"rc-{version}-{build}"
    if info.branch_type is BranchType.HOTFIX:
        version = sanitize_tag_component(name[len("hotfix/") :])
        return f"hotfix-{version}-{build}"
    return f"{sanitize_tag_component(name)}-{build}"


class BranchClassifier:
    """Classifies branches and answers policy questions against one table.

    Args:
        policies: User policy entries keyed by literal name or glob. They
            replace or extend the built-in table.

    Example:
        >>> classifier = BranchClassifier({"feature/special-*": special_policy})  # doctest: +SKIP
        >>> info = classifier.describe(EnvironMetadataSource())  # doctest: +SKIP
        >>> classifier.validate_for_environment(info, "prod")  # doctest: +SKIP
    """

    def __init__(self, policies: Mapping[str, BranchPolicy] | None = None) -> None:
        self.table = BranchPolicyTable(policies)
        self._log = logger.bind(policy_count=len(self.table))

    @classmethod
    def from_config(cls, config: GlobalConfig) -> BranchClassifier:
        """Create a classifier with the configured branch policies merged in."""
        return cls(config.branch_policies)

    classify_type = staticmethod(classify_type)

    def resolve_policy(self, name: str) -> BranchPolicy:
        """Resolve the policy for ``name`` against this classifier's table."""
        with create_span("branchline.resolve_policy", attributes={"branch": name}):
            return resolve_policy(name, self.table)

    def branch_info(self, metadata: CommitMetadata) -> BranchInfo:
        """Build the immutable ``BranchInfo`` for source-control metadata."""
        name = normalize_branch_name(metadata.name)
        return BranchInfo(
            name=name,
            commit_hash=metadata.commit_hash,
            short_hash=metadata.commit_hash[:8],
            commit_message=metadata.commit_message,
            author=metadata.author,
            author_email=metadata.author_email,
            commit_timestamp=metadata.commit_timestamp,
            branch_type=classify_type(name),
            policy=self.resolve_policy(name),
        )

    def degraded_branch_info(self) -> BranchInfo:
        """Branch info used when source control cannot be read."""
        return BranchInfo(
            name=UNKNOWN,
            commit_hash=UNKNOWN,
            short_hash=UNKNOWN,
            commit_message=UNKNOWN,
            author=UNKNOWN,
            author_email=UNKNOWN,
            branch_type=BranchType.CUSTOM,
            policy=self.table.default_policy,
        )

    def describe(self, source: SourceControl) -> BranchInfo:
        """Read metadata from ``source`` and classify the branch.

        A failing collaborator yields the degraded branch info (``unknown``
        name and commit, default policy) instead of an exception.
        """
        try:
            metadata = source.read_commit_metadata()
        except Exception as e:
            self._log.warning(
                "branch_info_unavailable",
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.degraded_branch_info()

        info = self.branch_info(metadata)
        self._log.info(
            "branch_described",
            branch=info.name,
            branch_type=info.branch_type.value,
            commit=info.short_hash,
            author=info.author,
        )
        return info

    def compute_docker_tag(
        self, info: BranchInfo, build_number: str | int = DEFAULT_BUILD_NUMBER
    ) -> str:
        return compute_docker_tag(info, build_number)

    def ephemeral_environment_name(self, info: BranchInfo) -> str | None:
        """Name of the branch-scoped environment, if the policy allows one."""
        if not info.policy.ephemeral_environment:
            return None
        suffix = info.name
        if info.branch_type is BranchType.FEATURE:
            suffix = info.name[len("feature/") :]
        return f"feature-{sanitize_tag_component(suffix)}-{info.short_hash.lower()}"

    def validate_for_environment(self, info: BranchInfo, environment: str) -> None:
        """Check that the branch policy permits deploying to ``environment``.

        Raises:
            PolicyViolationError: If the environment is not in the policy.
        """
        allowed = info.policy.environments
        if environment not in allowed:
            raise PolicyViolationError(info.name, environment, allowed)
        self._log.info("branch_validated", branch=info.name, environment=environment)

    def allowed_environments(self, name: str) -> tuple[str, ...]:
        return self.resolve_policy(name).environments

    def requires_approval(self, environment: str, name: str) -> bool:
        return environment in self.resolve_policy(name).requires_approval

    def supports_auto_promotion(self, environment: str, name: str) -> bool:
        return environment in self.resolve_policy(name).auto_promote

    def deployment_strategy(self, name: str) -> DeploymentStrategy:
        return self.resolve_policy(name).deployment_strategy

    def build_configuration(
        self, info: BranchInfo, build_number: str | int = DEFAULT_BUILD_NUMBER
    ) -> BuildConfiguration:
        """Collect the branch-derived build settings for a run."""
        policy = info.policy
        return BuildConfiguration(
            branch_name=info.name,
            branch_type=info.branch_type,
            docker_tag=compute_docker_tag(info, build_number),
            ephemeral_environment=self.ephemeral_environment_name(info),
            allowed_environments=policy.environments,
            deployment_strategy=policy.deployment_strategy,
            quality_gate_required=policy.quality_gate_required,
            security_scan_required=policy.security_scan_required,
            performance_test_required=policy.performance_test_required,
            fast_track=policy.fast_track,
        )

    def branch_report(
        self, info: BranchInfo, build_number: str | int = DEFAULT_BUILD_NUMBER
    ) -> dict[str, Any]:
        """Branch section of the run report."""
        return {
            "branch": info.model_dump(mode="json"),
            "build_configuration": self.build_configuration(info, build_number).model_dump(
                mode="json"
            ),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }


__all__ = [
    "BranchClassifier",
    "classify_type",
    "compute_docker_tag",
    "normalize_branch_name",
    "resolve_policy",
    "sanitize_tag_component",
]
