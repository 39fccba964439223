"""Unit tests for configuration and record schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from branchline.schemas.branch import (
    BranchPolicy,
    BranchType,
    BuildConfiguration,
    CommitMetadata,
    DeploymentStrategy,
)
from branchline.schemas.config import GlobalConfig, NexusSettings, ServiceNowSettings
from branchline.schemas.environment import EnvironmentOverride
from branchline.schemas.report import TestResult


class TestBranchPolicy:
    """Tests for BranchPolicy validation."""

    def test_defaults(self) -> None:
        policy = BranchPolicy(environments=("dev",))

        assert policy.deployment_strategy is DeploymentStrategy.ROLLING_UPDATE
        assert policy.security_scan_required
        assert not policy.quality_gate_required
        assert not policy.ephemeral_environment
        assert not policy.fast_track

    def test_camel_case_keys(self) -> None:
        policy = BranchPolicy.model_validate(
            {
                "environments": ["dev", "sit"],
                "autoPromote": ["dev"],
                "requiresApproval": ["sit"],
                "deploymentStrategy": "canary",
                "ephemeralEnvironment": True,
            }
        )

        assert policy.environments == ("dev", "sit")
        assert policy.auto_promote == frozenset({"dev"})
        assert policy.deployment_strategy is DeploymentStrategy.CANARY
        assert policy.ephemeral_environment

    def test_duplicate_environments_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate environments"):
            BranchPolicy(environments=("dev", "sit", "dev"))

    def test_empty_environments_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BranchPolicy(environments=())

    @pytest.mark.parametrize("field", ["auto_promote", "requires_approval"])
    def test_sets_must_be_subsets(self, field: str) -> None:
        with pytest.raises(ValidationError, match="outside environments"):
            BranchPolicy(environments=("dev",), **{field: {"prod"}})

    def test_unknown_strategy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BranchPolicy(environments=("dev",), deployment_strategy="big-bang")

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BranchPolicy(environments=("dev",), approvers=["ops"])

    def test_frozen(self) -> None:
        policy = BranchPolicy(environments=("dev",))
        with pytest.raises(ValidationError):
            policy.fast_track = True  # type: ignore[misc]


class TestCommitMetadata:
    """Tests for CommitMetadata parsing."""

    def test_epoch_string_timestamp(self) -> None:
        metadata = CommitMetadata(name="main", commit_hash="abc", commit_timestamp="0")
        assert metadata.commit_timestamp is not None
        assert metadata.commit_timestamp.year == 1970

    def test_name_required(self) -> None:
        with pytest.raises(ValidationError):
            CommitMetadata(name="", commit_hash="abc")


class TestBuildConfiguration:
    """Tests for BuildConfiguration."""

    def test_docker_tag_must_be_tag_safe(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfiguration(
                branch_name="main",
                branch_type=BranchType.MAIN,
                docker_tag="Main_1",
                allowed_environments=("dev",),
                deployment_strategy=DeploymentStrategy.ROLLING_UPDATE,
                quality_gate_required=True,
                security_scan_required=True,
                performance_test_required=False,
                fast_track=False,
            )


class TestEnvironmentOverride:
    """Tests for EnvironmentOverride validation."""

    def test_only_name_required(self) -> None:
        override = EnvironmentOverride(name="prod")
        assert override.model_dump(exclude_unset=True) == {"name": "prod"}

    @pytest.mark.parametrize("name", ["Prod", "1prod", "", "prod env"])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError):
            EnvironmentOverride(name=name)

    def test_replicas_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            EnvironmentOverride(name="prod", replicas=0)

    def test_resource_quantities_validated(self) -> None:
        with pytest.raises(ValidationError):
            EnvironmentOverride.model_validate(
                {"name": "prod", "resources": {"limits": {"cpu": "lots"}}}
            )


class TestGlobalConfig:
    """Tests for GlobalConfig validation and aliases."""

    def test_empty_config_uses_defaults(self) -> None:
        config = GlobalConfig.model_validate({})

        assert config.project_name is None
        assert config.environments == []
        assert config.quality_gate_enabled
        assert config.service_now is None

    def test_duplicate_environment_entries_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate environment entries"):
            GlobalConfig.model_validate(
                {"environments": [{"name": "prod"}, {"name": "prod", "replicas": 4}]}
            )

    @pytest.mark.parametrize("key", ["branch_policies", "branchPolicies", "branchConfigs"])
    def test_branch_policy_aliases(self, key: str) -> None:
        config = GlobalConfig.model_validate({key: {"spike/*": {"environments": ["dev"]}}})
        assert list(config.branch_policies) == ["spike/*"]

    def test_nexus_environment_urls(self) -> None:
        nexus = NexusSettings.model_validate(
            {"url": "https://nexus", "devUrl": "https://nexus-dev", "prodUrl": "https://nexus-prod"}
        )

        assert nexus.url_for("dev") == "https://nexus-dev"
        assert nexus.url_for("prod") == "https://nexus-prod"
        assert nexus.url_for("sit") is None
        assert nexus.url_for("perf") is None

    def test_service_now_defaults(self) -> None:
        settings = ServiceNowSettings(url="https://example.service-now.com")

        assert settings.assignment_group == "DevOps Team"
        assert settings.field_mappings["build_number"] == "u_build_number"


class TestTestResult:
    """Tests for TestResult counts."""

    def test_counts_default_to_zero(self) -> None:
        result = TestResult(suite_name="unit")
        assert (result.passed, result.failed, result.total) == (0, 0, 0)

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TestResult(suite_name="unit", failed=-1)
