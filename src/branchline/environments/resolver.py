"""Environment configuration resolution.

Builds the per-environment configuration table in three layers:

1. hard-coded defaults for dev, sit, uat and prod,
2. ``GlobalConfig.environments`` entries deep-merged by name (user fields
   win, unspecified fields keep their default),
3. derived registry, quality, cluster and monitoring sub-configs, computed
   after the merge so overrides are visible to every derivation.

Resolution fails only for a new environment that omits a required field.
Missing registry URLs are reported by ``validate``, not by resolution.

Example:
    >>> resolver = EnvironmentConfigResolver({})
    >>> sorted(resolver.available_environments())
    ['dev', 'prod', 'sit', 'uat']
    >>> resolver.get_config("prod").resources.limits.cpu
    '4000m'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from branchline.environments.defaults import (
    ALERTING_ENVIRONMENTS,
    BRANCH_ANALYSIS_ENVIRONMENTS,
    DEFAULT_ENVIRONMENTS,
    DEFAULT_REPOSITORIES,
    PRODUCTION,
    default_base_fields,
    default_namespace,
    scoped_name,
)
from branchline.errors import ConfigurationError, UnknownEnvironmentError
from branchline.schemas.branch import DeploymentStrategy
from branchline.schemas.config import GlobalConfig
from branchline.schemas.environment import (
    ClusterConfig,
    EnvironmentConfig,
    EnvironmentOverride,
    MonitoringConfig,
    QualityConfig,
    RegistryConfig,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

CUSTOM_REQUIRED_FIELDS = ("deployment_strategy", "replicas", "resources")


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _format_validation_error(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(loc) for loc in err.get('loc', []))}: {err.get('msg', 'Invalid value')}"
        for err in error.errors()
    ]


def as_global_config(config: GlobalConfig | Mapping[str, Any] | None) -> GlobalConfig:
    """Coerce a mapping (or None) into a validated ``GlobalConfig``.

    Raises:
        ConfigurationError: If the mapping does not validate.
    """
    if isinstance(config, GlobalConfig):
        return config
    try:
        return GlobalConfig.model_validate(dict(config or {}))
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid global configuration", errors=_format_validation_error(e)
        ) from e


def build_registry_config(config: GlobalConfig, environment: str) -> RegistryConfig:
    """Artifact repository settings: env URL, else ``{url}/{env}``."""
    nexus = config.nexus
    url = nexus.url_for(environment)
    if url is None and nexus.url:
        url = f"{nexus.url.rstrip('/')}/{environment}"

    repositories = dict(nexus.repositories)
    repositories.update(DEFAULT_REPOSITORIES.get(environment, {}))
    return RegistryConfig(url=url, repositories=repositories)


def build_quality_config(config: GlobalConfig, environment: str) -> QualityConfig:
    return QualityConfig(
        url=config.sonarqube.url,
        project_key=scoped_name(config.project_name, environment),
        quality_gate="Production" if environment == PRODUCTION else "Default",
        branch_analysis=environment in BRANCH_ANALYSIS_ENVIRONMENTS,
    )


def build_cluster_config(
    config: GlobalConfig, environment: str, namespace: str | None
) -> ClusterConfig:
    production = environment == PRODUCTION
    return ClusterConfig(
        server_url=config.kubernetes.server_url,
        namespace=namespace,
        context=f"{environment}-cluster",
        ingress_class="nginx-prod" if production else "nginx-dev",
        storage_class="fast-ssd" if production else "standard",
    )


def build_monitoring_config(config: GlobalConfig, environment: str) -> MonitoringConfig:
    grafana = config.monitoring.grafana_url
    dashboard = None
    if grafana:
        dashboard = f"{grafana.rstrip('/')}/d/{scoped_name(config.project_name, environment)}"
    return MonitoringConfig(
        metrics_enabled=True,
        alerting=environment in ALERTING_ENVIRONMENTS,
        dashboard_url=dashboard,
        log_level="WARN" if environment == PRODUCTION else "INFO",
    )


def _custom_base_fields(
    override: EnvironmentOverride, project_name: str | None
) -> dict[str, Any]:
    supplied = override.model_dump(exclude_unset=True)
    missing = [name for name in CUSTOM_REQUIRED_FIELDS if supplied.get(name) is None]
    if missing:
        raise ConfigurationError(
            f"Environment {override.name} is not a built-in environment and must "
            f"define {', '.join(CUSTOM_REQUIRED_FIELDS)}",
            field=f"environments.{override.name}",
            errors=[f"missing {name}" for name in missing],
        )
    return {
        "name": override.name,
        "display_name": override.name.upper(),
        "namespace": default_namespace(project_name, override.name),
        "requires_approval": False,
        "auto_promote": False,
    }


def resolve_environments(
    config: GlobalConfig | Mapping[str, Any] | None = None,
) -> dict[str, EnvironmentConfig]:
    """Build the full environment table for a global configuration.

    Deterministic and idempotent: the same configuration always yields an
    equal table. Built-in environments come first in their standard order,
    followed by new environments in declaration order.

    Raises:
        ConfigurationError: If the configuration is invalid or a new
            environment omits a required field.
    """
    global_config = as_global_config(config)
    project = global_config.project_name

    bases: dict[str, dict[str, Any]] = {
        env: default_base_fields(env, project) for env in DEFAULT_ENVIRONMENTS
    }
    for override in global_config.environments:
        base = bases.get(override.name)
        if base is None:
            base = _custom_base_fields(override, project)
        bases[override.name] = _deep_merge(
            base, override.model_dump(exclude_unset=True, exclude={"name"})
        )

    resolved: dict[str, EnvironmentConfig] = {}
    for name, base in bases.items():
        try:
            resolved[name] = EnvironmentConfig.model_validate(
                {
                    **base,
                    "registry": build_registry_config(global_config, name),
                    "quality": build_quality_config(global_config, name),
                    "cluster": build_cluster_config(global_config, name, base.get("namespace")),
                    "monitoring": build_monitoring_config(global_config, name),
                }
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for environment {name}",
                field=f"environments.{name}",
                errors=_format_validation_error(e),
            ) from e
    return resolved


class EnvironmentConfigResolver:
    """Resolved environment table with lookups and readiness validation.

    Args:
        config: Global configuration (model, mapping, or None for defaults).
    """

    def __init__(self, config: GlobalConfig | Mapping[str, Any] | None = None) -> None:
        self.config = as_global_config(config)
        self._environments = resolve_environments(self.config)
        self._log = logger.bind(project=self.config.project_name)
        self._log.info(
            "environments_resolved",
            environments=list(self._environments),
        )

    @staticmethod
    def resolve(
        config: GlobalConfig | Mapping[str, Any] | None = None,
    ) -> dict[str, EnvironmentConfig]:
        """Resolve a configuration without keeping state."""
        return resolve_environments(config)

    @property
    def environments(self) -> dict[str, EnvironmentConfig]:
        return dict(self._environments)

    def available_environments(self) -> list[str]:
        return list(self._environments)

    def get_config(self, name: str) -> EnvironmentConfig:
        """Look up an environment. Never falls back to a default.

        Raises:
            UnknownEnvironmentError: If ``name`` is not in the table.
        """
        try:
            return self._environments[name]
        except KeyError:
            raise UnknownEnvironmentError(name, self._environments) from None

    def __contains__(self, name: object) -> bool:
        return name in self._environments

    def requires_approval(self, name: str) -> bool:
        return self.get_config(name).requires_approval

    def supports_auto_promotion(self, name: str) -> bool:
        return self.get_config(name).auto_promote

    def get_strategy(self, name: str) -> DeploymentStrategy:
        return self.get_config(name).deployment_strategy

    def validate(self, name: str) -> ValidationResult:
        """Report deployment readiness of an environment. Never raises.

        Errors make the result invalid; warnings do not.
        """
        config = self._environments.get(name)
        if config is None:
            return ValidationResult(
                environment=name,
                valid=False,
                errors=[
                    f"Environment {name} configuration not found. "
                    f"Available environments: {', '.join(self._environments)}"
                ],
            )

        errors: list[str] = []
        warnings: list[str] = []
        if not config.registry.url:
            errors.append("Registry URL is not configured")
        if not config.cluster.namespace:
            warnings.append("Kubernetes namespace is not configured, will use default value")
        if name == PRODUCTION and not config.requires_approval:
            warnings.append("Production environment should enable approval process")

        return ValidationResult(
            environment=name,
            valid=not errors,
            errors=errors,
            warnings=warnings,
        )

    def ensure_ready(self, name: str) -> EnvironmentConfig:
        """Return the environment config if it is ready for deployment.

        Raises:
            UnknownEnvironmentError: If ``name`` is not in the table.
            ConfigurationError: If validation reports errors.
        """
        config = self.get_config(name)
        result = self.validate(name)
        for warning in result.warnings:
            self._log.warning("environment_validation_warning", environment=name, warning=warning)
        if not result.valid:
            raise ConfigurationError(
                f"Environment {name} is not ready for deployment",
                field=f"environments.{name}",
                errors=result.errors,
            )
        return config


__all__ = [
    "CUSTOM_REQUIRED_FIELDS",
    "EnvironmentConfigResolver",
    "as_global_config",
    "build_cluster_config",
    "build_monitoring_config",
    "build_quality_config",
    "build_registry_config",
    "resolve_environments",
]
