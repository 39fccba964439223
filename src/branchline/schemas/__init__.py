"""Pydantic schemas for branch policies, environments, configuration and reports."""

from __future__ import annotations

from branchline.schemas.branch import (
    BranchInfo,
    BranchPolicy,
    BranchType,
    BuildConfiguration,
    CommitMetadata,
    DeploymentStrategy,
)
from branchline.schemas.config import (
    GlobalConfig,
    KubernetesSettings,
    MonitoringSettings,
    NexusSettings,
    ServiceNowSettings,
    SonarQubeSettings,
)
from branchline.schemas.environment import (
    ClusterConfig,
    EnvironmentConfig,
    EnvironmentOverride,
    MonitoringConfig,
    QualityConfig,
    RegistryConfig,
    ResourceQuantity,
    ResourceRequirements,
    ValidationResult,
)
from branchline.schemas.report import (
    ArtifactRecord,
    DeploymentRecord,
    QualityResult,
    ReportSnapshot,
    RunStatus,
    SecurityResult,
    TestResult,
)

__all__ = [
    "ArtifactRecord",
    "BranchInfo",
    "BranchPolicy",
    "BranchType",
    "BuildConfiguration",
    "ClusterConfig",
    "CommitMetadata",
    "DeploymentRecord",
    "DeploymentStrategy",
    "EnvironmentConfig",
    "EnvironmentOverride",
    "GlobalConfig",
    "KubernetesSettings",
    "MonitoringConfig",
    "MonitoringSettings",
    "NexusSettings",
    "QualityConfig",
    "QualityResult",
    "RegistryConfig",
    "ReportSnapshot",
    "ResourceQuantity",
    "ResourceRequirements",
    "RunStatus",
    "SecurityResult",
    "ServiceNowSettings",
    "SonarQubeSettings",
    "TestResult",
    "ValidationResult",
]
