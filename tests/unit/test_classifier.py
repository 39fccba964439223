"""Unit tests for branch classification and policy resolution."""

from __future__ import annotations

import re
from typing import Any

import pytest
from structlog.testing import capture_logs

from branchline.branching.classifier import (
    BranchClassifier,
    classify_type,
    compute_docker_tag,
    normalize_branch_name,
    resolve_policy,
)
from branchline.branching.policies import BranchPolicyTable, builtin_policies
from branchline.branching.scm import EnvironMetadataSource
from branchline.config import parse_global_config
from branchline.errors import PolicyViolationError
from branchline.schemas.branch import (
    BranchInfo,
    BranchPolicy,
    BranchType,
    CommitMetadata,
    DeploymentStrategy,
)

TAG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def _policy(*environments: str, **kwargs: Any) -> BranchPolicy:
    return BranchPolicy(environments=environments, **kwargs)


class TestClassifyType:
    """Tests for branch type classification."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("main", BranchType.MAIN),
            ("master", BranchType.MAIN),
            ("develop", BranchType.DEVELOP),
            ("dev", BranchType.DEVELOP),
            ("feature/login", BranchType.FEATURE),
            ("release/2.0.0", BranchType.RELEASE),
            ("hotfix/1.2.1", BranchType.HOTFIX),
            ("bugfix/npe", BranchType.BUGFIX),
            ("experiment/x", BranchType.CUSTOM),
            ("origin/release/2.0.0", BranchType.RELEASE),
        ],
    )
    def test_classification(self, name: str, expected: BranchType) -> None:
        assert classify_type(name) is expected

    @pytest.mark.parametrize("name", ["Main", "Feature/x", "features/x", "mainline"])
    def test_classification_is_case_sensitive_and_prefix_exact(self, name: str) -> None:
        assert classify_type(name) is BranchType.CUSTOM

    def test_normalize_strips_single_origin_prefix(self) -> None:
        assert normalize_branch_name("origin/main") == "main"
        assert normalize_branch_name("origin/origin/main") == "origin/main"
        assert normalize_branch_name("main") == "main"


class TestResolvePolicy:
    """Resolution precedence: exact, glob, branch type, default."""

    def test_release_branch_uses_builtin_release_policy(self, classifier: BranchClassifier) -> None:
        policy = classifier.resolve_policy("release/2.0.0")

        assert policy.environments == ("dev", "sit", "uat")
        assert policy.deployment_strategy is DeploymentStrategy.BLUE_GREEN
        assert policy.requires_approval == frozenset({"uat"})

    def test_exact_match_outranks_glob(self) -> None:
        literal = _policy("dev", "sit")
        classifier = BranchClassifier({"feature/x": literal})

        assert classifier.resolve_policy("feature/x") == literal
        assert classifier.resolve_policy("feature/y") == builtin_policies()["feature/*"]

    def test_glob_outranks_type_fallback(self) -> None:
        by_type = _policy("dev")
        urgent = _policy("dev", "sit", fast_track=True)
        classifier = BranchClassifier({"bugfix": by_type, "bugfix/urgent-*": urgent})

        assert classifier.resolve_policy("bugfix/urgent-1") == urgent
        assert classifier.resolve_policy("bugfix/npe") == by_type

    def test_first_glob_in_table_order_wins(self) -> None:
        """Built-in globs precede user globs that add new keys."""
        special = _policy("dev", "sit")
        classifier = BranchClassifier({"feature/special-*": special})

        assert classifier.resolve_policy("feature/special-1") == builtin_policies()["feature/*"]

    def test_user_entry_replaces_builtin_key(self) -> None:
        replacement = _policy("dev", "sit", deployment_strategy=DeploymentStrategy.CANARY)
        classifier = BranchClassifier({"feature/*": replacement})

        assert classifier.resolve_policy("feature/special-1") == replacement

    @pytest.mark.parametrize("name", ["experiment/x", "", "unknown", "Feature/x"])
    def test_unmatched_names_fall_back_to_main(self, name: str) -> None:
        table = BranchPolicyTable()
        assert resolve_policy(name, table) == table.default_policy
        assert table.default_policy == builtin_policies()["main"]

    def test_fallback_logs_warning(self) -> None:
        with capture_logs() as logs:
            resolve_policy("experiment/x", BranchPolicyTable())

        fallback = [log for log in logs if log["event"] == "branch_policy_fallback"]
        assert len(fallback) == 1
        assert fallback[0]["log_level"] == "warning"
        assert fallback[0]["branch"] == "experiment/x"

    def test_origin_prefix_is_ignored(self, classifier: BranchClassifier) -> None:
        assert classifier.resolve_policy("origin/hotfix/1.0") == builtin_policies()["hotfix/*"]

    def test_overridden_main_becomes_default(self) -> None:
        custom_main = _policy("dev", "prod")
        table = BranchPolicyTable({"main": custom_main})

        assert resolve_policy("experiment/x", table) == custom_main

    def test_from_config_merges_branch_configs(self) -> None:
        config = parse_global_config(
            "branchConfigs:\n"
            "  experiment/*:\n"
            "    environments: [dev, sit]\n"
            "    autoPromote: [dev]\n"
            "    deploymentStrategy: canary\n"
        )

        classifier = BranchClassifier.from_config(config)

        policy = classifier.resolve_policy("experiment/x")
        assert policy.environments == ("dev", "sit")
        assert policy.deployment_strategy is DeploymentStrategy.CANARY
        assert classifier.resolve_policy("release/1.0") == builtin_policies()["release/*"]


class TestDockerTag:
    """Tests for Docker tag computation."""

    @pytest.mark.parametrize(
        ("name", "build_number", "expected"),
        [
            ("main", 42, "42"),
            ("develop", 42, "dev-42"),
            ("feature/User_Auth", 42, "feature-user-auth-42"),
            ("release/2.0.0", 42, "rc-2-0-0-42"),
            ("hotfix/1.2.1", "7", "hotfix-1-2-1-7"),
            ("experiment/Thing", 3, "experiment-thing-3"),
            ("bugfix/npe", 1, "bugfix-npe-1"),
        ],
    )
    def test_tag_by_branch_type(
        self,
        classifier: BranchClassifier,
        make_metadata: Any,
        name: str,
        build_number: int | str,
        expected: str,
    ) -> None:
        info = classifier.branch_info(make_metadata(name))
        assert compute_docker_tag(info, build_number) == expected

    def test_build_number_defaults_to_latest(
        self, classifier: BranchClassifier, make_metadata: Any
    ) -> None:
        info = classifier.branch_info(make_metadata("develop"))
        assert classifier.compute_docker_tag(info) == "dev-latest"

    @pytest.mark.parametrize(
        "name",
        ["feature/ÜBER+fast", "release/v2.0_RC1", "custom/A B/C", "hotfix/#12"],
    )
    def test_tag_is_deterministic_and_safe(
        self, classifier: BranchClassifier, make_metadata: Any, name: str
    ) -> None:
        info = classifier.branch_info(make_metadata(name))

        first = compute_docker_tag(info, "Build.9")
        second = compute_docker_tag(info, "Build.9")

        assert first == second
        assert TAG_PATTERN.match(first)


class TestValidateForEnvironment:
    """Tests for branch-to-environment policy checks."""

    def test_disallowed_environment_raises(self, classifier: BranchClassifier) -> None:
        info = BranchInfo(
            name="feature/x",
            commit_hash="abc",
            short_hash="abc",
            branch_type=BranchType.FEATURE,
            policy=_policy("dev"),
        )

        with pytest.raises(PolicyViolationError) as exc_info:
            classifier.validate_for_environment(info, "prod")

        assert exc_info.value.branch == "feature/x"
        assert exc_info.value.environment == "prod"
        assert exc_info.value.allowed_environments == ["dev"]
        assert exc_info.value.exit_code == 2

    def test_allowed_environment_passes(
        self, classifier: BranchClassifier, make_metadata: Any
    ) -> None:
        info = classifier.branch_info(make_metadata("release/2.0.0"))
        classifier.validate_for_environment(info, "uat")


class TestDescribe:
    """Tests for reading branch info from source control."""

    def test_describe_from_environment(self, classifier: BranchClassifier) -> None:
        source = EnvironMetadataSource(
            {
                "GIT_BRANCH": "origin/release/2.0.0",
                "GIT_COMMIT": "0123456789abcdef0123",
                "GIT_AUTHOR_NAME": "Dev One",
            }
        )

        info = classifier.describe(source)

        assert info.name == "release/2.0.0"
        assert info.short_hash == "01234567"
        assert info.branch_type is BranchType.RELEASE
        assert info.author == "Dev One"
        assert info.policy == builtin_policies()["release/*"]

    def test_failing_source_degrades(self, classifier: BranchClassifier) -> None:
        class BrokenSource:
            def read_commit_metadata(self) -> CommitMetadata:
                raise RuntimeError("not a git repository")

        with capture_logs() as logs:
            info = classifier.describe(BrokenSource())

        assert info.name == "unknown"
        assert info.commit_hash == "unknown"
        assert (info.commit_message, info.author, info.author_email) == ("unknown",) * 3
        assert info.branch_type is BranchType.CUSTOM
        assert info.policy == classifier.table.default_policy
        assert any(log["event"] == "branch_info_unavailable" for log in logs)

    def test_missing_variables_degrade(self, classifier: BranchClassifier) -> None:
        info = classifier.describe(EnvironMetadataSource({}))
        assert info.name == "unknown"


class TestBranchQueries:
    """Tests for policy lookups and branch-derived build settings."""

    def test_ephemeral_environment_for_feature(
        self, classifier: BranchClassifier, make_metadata: Any
    ) -> None:
        info = classifier.branch_info(make_metadata("feature/User_Auth"))
        assert classifier.ephemeral_environment_name(info) == "feature-user-auth-abc123de"

    def test_no_ephemeral_environment_for_main(
        self, classifier: BranchClassifier, make_metadata: Any
    ) -> None:
        info = classifier.branch_info(make_metadata("main"))
        assert classifier.ephemeral_environment_name(info) is None

    def test_lookups_by_name(self, classifier: BranchClassifier) -> None:
        assert classifier.allowed_environments("develop") == ("dev", "sit")
        assert classifier.requires_approval("uat", "release/1.0")
        assert not classifier.requires_approval("dev", "release/1.0")
        assert classifier.supports_auto_promotion("dev", "develop")
        assert not classifier.supports_auto_promotion("sit", "develop")
        assert classifier.deployment_strategy("hotfix/1.0") is DeploymentStrategy.BLUE_GREEN

    def test_build_configuration(self, classifier: BranchClassifier, make_metadata: Any) -> None:
        info = classifier.branch_info(make_metadata("hotfix/1.2.1"))

        config = classifier.build_configuration(info, 9)

        assert config.docker_tag == "hotfix-1-2-1-9"
        assert config.fast_track
        assert config.allowed_environments == ("dev", "sit", "uat", "prod")
        assert config.ephemeral_environment is None
        assert config.performance_test_required

    def test_branch_report(self, classifier: BranchClassifier, make_metadata: Any) -> None:
        info = classifier.branch_info(make_metadata("feature/login"))

        report = classifier.branch_report(info, 3)

        assert report["branch"]["name"] == "feature/login"
        assert report["build_configuration"]["docker_tag"] == "feature-login-3"
        assert report["build_configuration"]["ephemeral_environment"] == (
            "feature-login-abc123de"
        )
        assert "generated_at" in report
