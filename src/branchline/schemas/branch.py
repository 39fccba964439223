"""Branch policy schemas.

Pydantic v2 models for the branch side of release decisions: which
environments a branch may reach, which of them need approval or may be
promoted automatically, the deployment strategy, and which gates are
mandatory.

Key Components:
    BranchType: Branch classification buckets
    DeploymentStrategy: Supported rollout strategies
    BranchPolicy: Policy bundle keyed by a branch pattern
    CommitMetadata: Raw payload from the source-control collaborator
    BranchInfo: Per-run, immutable description of the active branch
    BuildConfiguration: Branch-derived build settings for a run
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)


class BranchType(str, Enum):
    """Classification bucket for a branch name.

    Examples:
        >>> BranchType("feature").value
        'feature'
    """

    MAIN = "main"
    DEVELOP = "develop"
    FEATURE = "feature"
    RELEASE = "release"
    HOTFIX = "hotfix"
    BUGFIX = "bugfix"
    CUSTOM = "custom"


class DeploymentStrategy(str, Enum):
    """Rollout strategy applied when deploying to an environment."""

    ROLLING_UPDATE = "rolling-update"
    BLUE_GREEN = "blue-green"
    CANARY = "canary"


class BranchPolicy(BaseModel):
    """Bundle of environment, approval, strategy and gate rules for a branch.

    Attributes:
        environments: Reachable environments, in promotion order.
        auto_promote: Environments reached without human approval.
        requires_approval: Environments gated by an approval step.
        deployment_strategy: Rollout strategy for this branch.
        quality_gate_required: Whether the quality gate is mandatory.
        security_scan_required: Whether security scanning is mandatory.
        performance_test_required: Whether performance tests are mandatory.
        ephemeral_environment: Whether branch-scoped environments are created.
        fast_track: Whether approval friction is relaxed (hotfixes).

    Examples:
        >>> policy = BranchPolicy(
        ...     environments=("dev", "sit"),
        ...     auto_promote={"dev"},
        ...     requires_approval={"sit"},
        ... )
        >>> policy.deployment_strategy
        <DeploymentStrategy.ROLLING_UPDATE: 'rolling-update'>
    """

    model_config = MODEL_CONFIG

    environments: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Reachable environments in promotion order",
    )
    auto_promote: frozenset[str] = Field(
        default_factory=frozenset,
        description="Environments promoted without approval",
    )
    requires_approval: frozenset[str] = Field(
        default_factory=frozenset,
        description="Environments that need an approval step",
    )
    deployment_strategy: DeploymentStrategy = Field(
        default=DeploymentStrategy.ROLLING_UPDATE,
        description="Rollout strategy",
    )
    quality_gate_required: bool = Field(default=False)
    security_scan_required: bool = Field(default=True)
    performance_test_required: bool = Field(default=False)
    ephemeral_environment: bool = Field(default=False)
    fast_track: bool = Field(default=False)

    @field_validator("environments")
    @classmethod
    def validate_unique_environments(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject duplicate environment names."""
        duplicates = {env for env in v if v.count(env) > 1}
        if duplicates:
            raise ValueError(f"Duplicate environments: {sorted(duplicates)}")
        return v

    @model_validator(mode="after")
    def validate_subsets(self) -> BranchPolicy:
        """auto_promote and requires_approval must name reachable environments."""
        reachable = set(self.environments)
        for field_name in ("auto_promote", "requires_approval"):
            unknown = getattr(self, field_name) - reachable
            if unknown:
                raise ValueError(
                    f"{field_name} names environments outside environments: {sorted(unknown)}"
                )
        return self


class CommitMetadata(BaseModel):
    """Raw branch and commit metadata supplied by source control.

    ``commit_timestamp`` accepts a datetime or Unix epoch seconds (as
    emitted by ``git log --pretty=%ct``).
    """

    model_config = MODEL_CONFIG

    name: str = Field(..., min_length=1)
    commit_hash: str = Field(..., min_length=1)
    commit_message: str = ""
    author: str = ""
    author_email: str = ""
    commit_timestamp: datetime | None = None

    @field_validator("commit_timestamp", mode="before")
    @classmethod
    def parse_epoch_string(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        return v


class BranchInfo(BaseModel):
    """Immutable description of the branch driving a run.

    Computed once per run and cached for the run's duration.

    Attributes:
        name: Normalized branch name (no ``origin/`` prefix).
        commit_hash: Full commit hash.
        short_hash: First 8 characters of commit_hash.
        commit_message: Commit subject and body.
        author: Commit author name.
        author_email: Commit author email.
        commit_timestamp: Commit time, if known.
        branch_type: Classification of the branch name.
        policy: Resolved branch policy.
    """

    model_config = MODEL_CONFIG

    name: str
    commit_hash: str
    short_hash: str
    commit_message: str = ""
    author: str = ""
    author_email: str = ""
    commit_timestamp: datetime | None = None
    branch_type: BranchType
    policy: BranchPolicy


class BuildConfiguration(BaseModel):
    """Branch-derived build settings for a single run."""

    model_config = MODEL_CONFIG

    branch_name: str
    branch_type: BranchType
    docker_tag: str = Field(..., pattern=r"^[a-z0-9-]+$")
    ephemeral_environment: str | None = None
    allowed_environments: tuple[str, ...]
    deployment_strategy: DeploymentStrategy
    quality_gate_required: bool
    security_scan_required: bool
    performance_test_required: bool
    fast_track: bool


__all__ = [
    "BranchInfo",
    "BranchPolicy",
    "BranchType",
    "BuildConfiguration",
    "CommitMetadata",
    "DeploymentStrategy",
    "MODEL_CONFIG",
]
