"""branchline: branch-policy resolution and pipeline orchestration.

This package provides:
- BranchClassifier: Branch type classification and policy resolution
- EnvironmentConfigResolver: Default + override environment configuration
- PipelineOrchestrator: Serial, parallel and quality-gate pipeline phases
- BuildStateTracker, ReportGenerator: Per-run state and report export
- ReleasePlanner: Approval, change-request and namespace decisions
- ChangeManagement, ArtifactPublisher: Ticketing and artifact integrations
- Errors: Exception hierarchy with CLI exit codes (branchline.errors)

Example:
    >>> from branchline import BranchClassifier, EnvironmentConfigResolver
    >>> classifier = BranchClassifier()
    >>> classifier.resolve_policy("release/2.0.0").environments
    ('dev', 'sit', 'uat')

    >>> from branchline import PipelineOrchestrator, BuildStateTracker
    >>> tracker = BuildStateTracker.from_environ()
    >>> orchestrator = PipelineOrchestrator(tracker, EnvironmentConfigResolver({}))
    >>> orchestrator.add_stage("build", build_action)  # doctest: +SKIP
    >>> orchestrator.execute()  # doctest: +SKIP
"""

from __future__ import annotations

__version__ = "0.1.0"

from branchline.branching import (
    BranchClassifier,
    BranchPattern,
    BranchPolicyTable,
    EnvironMetadataSource,
    SourceControl,
)
from branchline.config import load_global_config, parse_global_config
from branchline.environments import EnvironmentConfigResolver, resolve_environments
from branchline.errors import (
    BranchlineError,
    ConfigurationError,
    PipelineStateError,
    PolicyViolationError,
    QualityGateFailedError,
    StageExecutionError,
    UnknownEnvironmentError,
)
from branchline.integrations import (
    ArtifactPublisher,
    ArtifactStore,
    ChangeManagement,
    TicketingClient,
)
from branchline.logging import configure_logging
from branchline.pipeline import (
    BuildStateTracker,
    OrchestratorPhase,
    PipelineOrchestrator,
    ReportGenerator,
    StageContext,
    StageOutcome,
)
from branchline.release import ReleasePlan, ReleasePlanner
from branchline.schemas import (
    BranchInfo,
    BranchPolicy,
    BranchType,
    CommitMetadata,
    DeploymentStrategy,
    EnvironmentConfig,
    GlobalConfig,
    ReportSnapshot,
    ValidationResult,
)

__all__ = [
    "__version__",
    # Branching
    "BranchClassifier",
    "BranchInfo",
    "BranchPattern",
    "BranchPolicy",
    "BranchPolicyTable",
    "BranchType",
    "CommitMetadata",
    "DeploymentStrategy",
    "EnvironMetadataSource",
    "SourceControl",
    # Environments
    "EnvironmentConfig",
    "EnvironmentConfigResolver",
    "GlobalConfig",
    "ValidationResult",
    "load_global_config",
    "parse_global_config",
    "resolve_environments",
    # Pipeline
    "BuildStateTracker",
    "OrchestratorPhase",
    "PipelineOrchestrator",
    "ReportGenerator",
    "ReportSnapshot",
    "StageContext",
    "StageOutcome",
    # Release and integrations
    "ArtifactPublisher",
    "ArtifactStore",
    "ChangeManagement",
    "ReleasePlan",
    "ReleasePlanner",
    "TicketingClient",
    # Errors
    "BranchlineError",
    "ConfigurationError",
    "PipelineStateError",
    "PolicyViolationError",
    "QualityGateFailedError",
    "StageExecutionError",
    "UnknownEnvironmentError",
    # Logging
    "configure_logging",
]
