"""Environment configuration schemas.

Defines the resolved per-environment configuration (base fields plus the
derived registry, quality, cluster and monitoring sub-configs), the partial
override shape accepted from user configuration, and the validation report.

Key Components:
    ResourceRequirements: Kubernetes-style requests/limits
    EnvironmentOverride: User-supplied, partially specified environment
    EnvironmentConfig: Fully resolved environment
    ValidationResult: Deployment readiness report
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from branchline.schemas.branch import MODEL_CONFIG, DeploymentStrategy

CPU_PATTERN = r"^\d+(\.\d+)?m?$"
MEMORY_PATTERN = r"^\d+(\.\d+)?([KMGTPE]i?)?$"
ENVIRONMENT_NAME_PATTERN = r"^[a-z][a-z0-9_-]*$"


class ResourceQuantity(BaseModel):
    """CPU and memory quantity pair (e.g. ``500m`` / ``512Mi``)."""

    model_config = MODEL_CONFIG

    cpu: str = Field(..., pattern=CPU_PATTERN)
    memory: str = Field(..., pattern=MEMORY_PATTERN)


class ResourceRequirements(BaseModel):
    """Container resource requests and limits."""

    model_config = MODEL_CONFIG

    requests: ResourceQuantity
    limits: ResourceQuantity


class ResourceQuantityOverride(BaseModel):
    model_config = MODEL_CONFIG

    cpu: str | None = Field(default=None, pattern=CPU_PATTERN)
    memory: str | None = Field(default=None, pattern=MEMORY_PATTERN)


class ResourceRequirementsOverride(BaseModel):
    model_config = MODEL_CONFIG

    requests: ResourceQuantityOverride | None = None
    limits: ResourceQuantityOverride | None = None


class RegistryConfig(BaseModel):
    """Artifact repository settings for an environment.

    Attributes:
        url: Repository manager URL for this environment (None if unset).
        repositories: Repository name per artifact type (maven, docker, npm, ...).
    """

    model_config = MODEL_CONFIG

    url: str | None = None
    repositories: dict[str, str] = Field(default_factory=dict)


class QualityConfig(BaseModel):
    """Static analysis settings for an environment."""

    model_config = MODEL_CONFIG

    url: str | None = None
    project_key: str
    quality_gate: str = Field(..., description="Quality gate profile name")
    branch_analysis: bool


class ClusterConfig(BaseModel):
    """Kubernetes target settings for an environment."""

    model_config = MODEL_CONFIG

    server_url: str | None = None
    namespace: str | None
    context: str
    ingress_class: str
    storage_class: str


class MonitoringConfig(BaseModel):
    """Metrics, alerting and logging settings for an environment."""

    model_config = MODEL_CONFIG

    metrics_enabled: bool = True
    alerting: bool
    dashboard_url: str | None = None
    log_level: str


class EnvironmentOverride(BaseModel):
    """User-supplied environment entry from ``GlobalConfig.environments``.

    Every field except ``name`` is optional. For the built-in environments
    unspecified fields keep their defaults; a new environment must supply
    ``deployment_strategy``, ``replicas`` and complete ``resources``.

    Examples:
        >>> override = EnvironmentOverride(name="prod", replicas=5)
        >>> override.model_dump(exclude_unset=True)
        {'name': 'prod', 'replicas': 5}
    """

    model_config = MODEL_CONFIG

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        pattern=ENVIRONMENT_NAME_PATTERN,
    )
    display_name: str | None = None
    namespace: str | None = None
    requires_approval: bool | None = None
    auto_promote: bool | None = None
    deployment_strategy: DeploymentStrategy | None = None
    replicas: int | None = Field(default=None, ge=1)
    resources: ResourceRequirementsOverride | None = None


class EnvironmentConfig(BaseModel):
    """Fully resolved configuration for one environment.

    Attributes:
        name: Environment name, unique within the resolved table.
        display_name: Human-readable name.
        namespace: Kubernetes namespace (None when no project name is known).
        requires_approval: Whether deployments need approval.
        auto_promote: Whether artifacts may be promoted automatically.
        deployment_strategy: Rollout strategy.
        replicas: Replica count (>= 1).
        resources: Container requests/limits.
        registry: Derived artifact repository settings.
        quality: Derived static analysis settings.
        cluster: Derived cluster settings.
        monitoring: Derived monitoring settings.
    """

    model_config = MODEL_CONFIG

    name: str = Field(..., pattern=ENVIRONMENT_NAME_PATTERN)
    display_name: str
    namespace: str | None
    requires_approval: bool = False
    auto_promote: bool = False
    deployment_strategy: DeploymentStrategy
    replicas: int = Field(..., ge=1)
    resources: ResourceRequirements
    registry: RegistryConfig
    quality: QualityConfig
    cluster: ClusterConfig
    monitoring: MonitoringConfig


class ValidationResult(BaseModel):
    """Deployment readiness report for an environment.

    ``valid`` is True exactly when ``errors`` is empty.
    """

    model_config = MODEL_CONFIG

    environment: str
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


__all__ = [
    "ClusterConfig",
    "EnvironmentConfig",
    "EnvironmentOverride",
    "MonitoringConfig",
    "QualityConfig",
    "RegistryConfig",
    "ResourceQuantity",
    "ResourceQuantityOverride",
    "ResourceRequirements",
    "ResourceRequirementsOverride",
    "ValidationResult",
]
