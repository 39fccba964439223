"""Built-in environment defaults.

The four standard environments (dev, sit, uat, prod) scale from the
smallest footprint in dev to the largest in prod. Every value here can be
overridden through ``GlobalConfig.environments``.
"""

from __future__ import annotations

from typing import Any

from branchline.schemas.branch import DeploymentStrategy

DEFAULT_ENVIRONMENTS = ("dev", "sit", "uat", "prod")
PRODUCTION = "prod"

APPROVAL_ENVIRONMENTS = frozenset({"uat", "prod"})
AUTO_PROMOTE_ENVIRONMENTS = frozenset({"dev", "sit"})
ALERTING_ENVIRONMENTS = frozenset({"uat", "prod"})
BRANCH_ANALYSIS_ENVIRONMENTS = frozenset({"dev", "sit"})

DEFAULT_REPLICAS = {"dev": 1, "sit": 1, "uat": 2, "prod": 3}

DEFAULT_RESOURCES: dict[str, dict[str, dict[str, str]]] = {
    "dev": {
        "requests": {"cpu": "100m", "memory": "256Mi"},
        "limits": {"cpu": "500m", "memory": "512Mi"},
    },
    "sit": {
        "requests": {"cpu": "200m", "memory": "512Mi"},
        "limits": {"cpu": "1000m", "memory": "1Gi"},
    },
    "uat": {
        "requests": {"cpu": "500m", "memory": "1Gi"},
        "limits": {"cpu": "2000m", "memory": "2Gi"},
    },
    "prod": {
        "requests": {"cpu": "1000m", "memory": "2Gi"},
        "limits": {"cpu": "4000m", "memory": "4Gi"},
    },
}

# Repository name per artifact type; prod publishes to release repositories.
DEFAULT_REPOSITORIES: dict[str, dict[str, str]] = {
    "dev": {"maven": "maven-snapshots", "docker": "docker-snapshots", "npm": "npm-snapshots"},
    "sit": {"maven": "maven-sit", "docker": "docker-sit", "npm": "npm-sit"},
    "uat": {"maven": "maven-uat", "docker": "docker-uat", "npm": "npm-uat"},
    "prod": {"maven": "maven-releases", "docker": "docker-releases", "npm": "npm-releases"},
}


def scoped_name(project_name: str | None, environment: str) -> str:
    """``{project}-{environment}``, or just the environment without a project."""
    if project_name:
        return f"{project_name}-{environment}"
    return environment


def default_namespace(project_name: str | None, environment: str) -> str | None:
    if not project_name:
        return None
    return scoped_name(project_name, environment)


def default_base_fields(environment: str, project_name: str | None) -> dict[str, Any]:
    """Base (non-derived) fields for a built-in environment."""
    return {
        "name": environment,
        "display_name": environment.upper(),
        "namespace": default_namespace(project_name, environment),
        "requires_approval": environment in APPROVAL_ENVIRONMENTS,
        "auto_promote": environment in AUTO_PROMOTE_ENVIRONMENTS,
        "deployment_strategy": (
            DeploymentStrategy.BLUE_GREEN
            if environment == PRODUCTION
            else DeploymentStrategy.ROLLING_UPDATE
        ),
        "replicas": DEFAULT_REPLICAS[environment],
        "resources": {
            kind: dict(quantity) for kind, quantity in DEFAULT_RESOURCES[environment].items()
        },
    }


__all__ = [
    "ALERTING_ENVIRONMENTS",
    "APPROVAL_ENVIRONMENTS",
    "AUTO_PROMOTE_ENVIRONMENTS",
    "BRANCH_ANALYSIS_ENVIRONMENTS",
    "DEFAULT_ENVIRONMENTS",
    "DEFAULT_REPLICAS",
    "DEFAULT_REPOSITORIES",
    "DEFAULT_RESOURCES",
    "PRODUCTION",
    "default_base_fields",
    "default_namespace",
    "scoped_name",
]
