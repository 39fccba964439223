"""Global configuration schema.

``GlobalConfig`` is the nested configuration object handed to the engine
(typically loaded from YAML by ``branchline.config.load_global_config``).
All keys are optional; absence implies the built-in defaults.

Examples:
    >>> config = GlobalConfig.model_validate(
    ...     {"projectName": "payments", "nexus": {"url": "https://nexus.example.com"}}
    ... )
    >>> config.nexus.url
    'https://nexus.example.com'
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field, field_validator

from branchline.schemas.branch import MODEL_CONFIG, BranchPolicy
from branchline.schemas.environment import EnvironmentOverride


# Ticket field name per report fact.
DEFAULT_FIELD_MAPPINGS = {
    "application": "u_application",
    "environment": "u_environment",
    "build_number": "u_build_number",
    "git_commit": "u_git_commit",
    "pipeline_report": "u_pipeline_report",
    "deployment_strategy": "u_deployment_strategy",
    "approver": "u_approver",
}


class NexusSettings(BaseModel):
    """Artifact repository manager settings.

    Attributes:
        url: Base URL; environment URLs default to ``{url}/{env}``.
        dev_url: Explicit URL for dev.
        sit_url: Explicit URL for sit.
        uat_url: Explicit URL for uat.
        prod_url: Explicit URL for prod.
        repositories: Repository name per artifact type.
    """

    model_config = MODEL_CONFIG

    url: str | None = None
    dev_url: str | None = None
    sit_url: str | None = None
    uat_url: str | None = None
    prod_url: str | None = None
    repositories: dict[str, str] = Field(default_factory=dict)

    def url_for(self, environment: str) -> str | None:
        """Environment-specific URL if configured, else None."""
        return {
            "dev": self.dev_url,
            "sit": self.sit_url,
            "uat": self.uat_url,
            "prod": self.prod_url,
        }.get(environment)


class SonarQubeSettings(BaseModel):
    model_config = MODEL_CONFIG

    url: str | None = None


class KubernetesSettings(BaseModel):
    model_config = MODEL_CONFIG

    server_url: str | None = None


class MonitoringSettings(BaseModel):
    model_config = MODEL_CONFIG

    grafana_url: str | None = None


class ServiceNowSettings(BaseModel):
    """Change-management integration settings.

    Credentials are not part of this model; the ticketing client owns them.
    """

    model_config = MODEL_CONFIG

    url: str = Field(..., min_length=1)
    assignment_group: str = "DevOps Team"
    field_mappings: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_FIELD_MAPPINGS))


class GlobalConfig(BaseModel):
    """Top-level engine configuration.

    Attributes:
        project_name: Application name used in namespaces and project keys.
        environments: Environment overrides and additions, merged by name.
        nexus: Artifact repository settings.
        sonarqube: Static analysis settings.
        kubernetes: Cluster settings.
        monitoring: Monitoring settings.
        service_now: Change-management settings (optional).
        branch_policies: User branch policy table; replaces or adds entries
            of the built-in table by pattern key.
        quality_gate_enabled: Whether the orchestrator evaluates the gate.
        max_parallel_stages: Worker cap for the parallel phase (None means
            one worker per parallel stage).
    """

    model_config = MODEL_CONFIG

    project_name: str | None = None
    environments: list[EnvironmentOverride] = Field(default_factory=list)
    nexus: NexusSettings = Field(default_factory=NexusSettings)
    sonarqube: SonarQubeSettings = Field(default_factory=SonarQubeSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    service_now: ServiceNowSettings | None = None
    branch_policies: dict[str, BranchPolicy] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("branch_policies", "branchPolicies", "branchConfigs"),
    )
    quality_gate_enabled: bool = True
    max_parallel_stages: int | None = Field(default=None, ge=1)

    @field_validator("environments")
    @classmethod
    def validate_unique_names(cls, v: list[EnvironmentOverride]) -> list[EnvironmentOverride]:
        """Environment entries are merged by name, so names must be unique."""
        names = [env.name for env in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate environment entries: {duplicates}")
        return v

    @field_validator("branch_policies")
    @classmethod
    def validate_pattern_keys(cls, v: dict[str, BranchPolicy]) -> dict[str, BranchPolicy]:
        if any(not key.strip() for key in v):
            raise ValueError("Branch policy patterns must be non-empty")
        return v


__all__ = [
    "DEFAULT_FIELD_MAPPINGS",
    "GlobalConfig",
    "KubernetesSettings",
    "MonitoringSettings",
    "NexusSettings",
    "ServiceNowSettings",
    "SonarQubeSettings",
]
