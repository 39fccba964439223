"""Release planning.

Combines a classified branch with the resolved environment table to decide,
per target environment, whether a deployment needs approval or a change
request, whether it may be promoted automatically, which strategy it uses
and where it lands (ephemeral branches get their own namespace).
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, Field

from branchline.branching.classifier import DEFAULT_BUILD_NUMBER, BranchClassifier
from branchline.environments.defaults import PRODUCTION
from branchline.environments.resolver import EnvironmentConfigResolver
from branchline.schemas.branch import MODEL_CONFIG, BranchInfo, DeploymentStrategy

logger = structlog.get_logger(__name__)

DEFAULT_RELEASE_NAME = "app"
EPHEMERAL_NAMESPACE_PREFIX = "ephemeral-"


class ReleasePlan(BaseModel):
    """Deployment decision for one branch build and target environment.

    Attributes:
        branch: Branch name.
        environment: Target environment.
        requires_approval: A human must approve the deployment.
        auto_promote: The artifact may be promoted without approval.
        change_request_required: A change ticket must be opened first.
        fast_track: The branch policy relaxes approval friction.
        deployment_strategy: Rollout strategy (from the branch policy).
        namespace: Target namespace (ephemeral namespace when applicable).
        release_name: Helm-style release name.
        image: ``{repository}:{tag}`` image reference.
        docker_tag: Tag of the image.
        ephemeral_environment: Branch-scoped environment name, if any.
    """

    model_config = MODEL_CONFIG

    branch: str
    environment: str
    requires_approval: bool
    auto_promote: bool
    change_request_required: bool
    fast_track: bool = False
    deployment_strategy: DeploymentStrategy
    namespace: str | None
    release_name: str = Field(..., min_length=1)
    image: str
    docker_tag: str
    ephemeral_environment: str | None = None

    def deployment_detail(self, info: BranchInfo, status: str = "SUCCESS") -> dict[str, Any]:
        """Detail payload recorded with a deployment of this plan."""
        return {
            "status": status,
            "image": self.image,
            "strategy": self.deployment_strategy.value,
            "branch": info.name,
            "commit": info.short_hash,
            "ephemeral": self.ephemeral_environment is not None,
            "namespace": self.namespace,
        }


class ReleasePlanner:
    """Plans deployments of a branch build across environments.

    Args:
        classifier: Branch classifier (policy checks, tags).
        resolver: Resolved environment table.
        release_name: Base release name (default: project name, else ``app``).
        use_ephemeral_environments: Deploy ephemeral-capable branches into
            their own namespace.
    """

    def __init__(
        self,
        classifier: BranchClassifier,
        resolver: EnvironmentConfigResolver,
        *,
        release_name: str | None = None,
        use_ephemeral_environments: bool = True,
    ) -> None:
        self.classifier = classifier
        self.resolver = resolver
        self.release_name = (
            release_name or resolver.config.project_name or DEFAULT_RELEASE_NAME
        )
        self.use_ephemeral_environments = use_ephemeral_environments
        self._log = logger.bind(release_name=self.release_name)

    def plan(
        self,
        info: BranchInfo,
        environment: str,
        build_number: str | int = DEFAULT_BUILD_NUMBER,
    ) -> ReleasePlan:
        """Plan the deployment of ``info`` to ``environment``.

        Raises:
            PolicyViolationError: If the branch may not deploy there.
            UnknownEnvironmentError: If the environment is not resolved.
            ConfigurationError: If the environment is not ready.
        """
        self.classifier.validate_for_environment(info, environment)
        env_config = self.resolver.ensure_ready(environment)
        policy = info.policy

        requires_approval = environment in policy.requires_approval
        auto_promote = (
            environment in policy.auto_promote
            and env_config.auto_promote
            and not requires_approval
        )
        change_request_required = requires_approval and (
            environment == PRODUCTION or policy.fast_track
        )

        docker_tag = self.classifier.compute_docker_tag(info, build_number)
        ephemeral = None
        if self.use_ephemeral_environments:
            ephemeral = self.classifier.ephemeral_environment_name(info)

        namespace = env_config.namespace
        release_name = self.release_name
        if ephemeral is not None:
            namespace = f"{EPHEMERAL_NAMESPACE_PREFIX}{ephemeral}"
            release_name = ephemeral

        plan = ReleasePlan(
            branch=info.name,
            environment=environment,
            requires_approval=requires_approval,
            auto_promote=auto_promote,
            change_request_required=change_request_required,
            fast_track=policy.fast_track,
            deployment_strategy=policy.deployment_strategy,
            namespace=namespace,
            release_name=release_name,
            image=f"{self.release_name}:{docker_tag}",
            docker_tag=docker_tag,
            ephemeral_environment=ephemeral,
        )
        self._log.info(
            "release_planned",
            branch=info.name,
            environment=environment,
            requires_approval=requires_approval,
            change_request_required=change_request_required,
            namespace=namespace,
        )
        return plan

    def promotion_path(
        self,
        info: BranchInfo,
        build_number: str | int = DEFAULT_BUILD_NUMBER,
    ) -> list[ReleasePlan]:
        """Plan every environment the branch policy allows, in policy order."""
        return [
            self.plan(info, environment, build_number)
            for environment in info.policy.environments
        ]


__all__ = ["ReleasePlan", "ReleasePlanner"]
