"""Run-state and report schemas.

Records accumulated by ``BuildStateTracker`` during a run and the immutable
``ReportSnapshot`` exported from it. Payload fields (``detail``,
``findings``, ``metadata``) are opaque to the engine.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from branchline.schemas.branch import MODEL_CONFIG


class RunStatus(str, Enum):
    """Status stamped into ``build_metrics["status"]``."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


class QualityResult(BaseModel):
    """Outcome of one quality check; read by the aggregate quality gate."""

    model_config = MODEL_CONFIG

    check_name: str = Field(..., min_length=1)
    passed: bool
    detail: Any = None


class TestResult(BaseModel):
    """Counts reported by one test suite.

    ``total`` is reported independently; it is not checked against
    ``passed + failed``.
    """

    __test__ = False

    model_config = MODEL_CONFIG

    suite_name: str = Field(..., min_length=1)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class SecurityResult(BaseModel):
    model_config = MODEL_CONFIG

    scan_name: str = Field(..., min_length=1)
    status: str
    findings: Any = None


class ArtifactRecord(BaseModel):
    """A registered build artifact.

    Attributes:
        artifact_type: Artifact kind (docker, maven, npm, ...).
        name: Artifact name.
        version: Artifact version or tag.
        metadata: Free-form extra fields.
    """

    model_config = MODEL_CONFIG

    artifact_type: str = Field(..., min_length=1)
    name: str
    version: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeploymentRecord(BaseModel):
    """One entry of the append-only deployment audit trail.

    Attributes:
        sequence: Monotonically increasing position in the history.
        environment: Target environment.
        timestamp: When the deployment was recorded (UTC).
        detail: Status, image, strategy and other deployment facts.
    """

    model_config = MODEL_CONFIG

    sequence: int = Field(..., ge=0)
    environment: str
    timestamp: datetime
    detail: dict[str, Any] = Field(default_factory=dict)


class ReportSnapshot(BaseModel):
    """Immutable export of a run's accumulated state.

    Examples:
        >>> snapshot = tracker.snapshot()  # doctest: +SKIP
        >>> snapshot.status
        <RunStatus.COMPLETED: 'COMPLETED'>
    """

    model_config = MODEL_CONFIG

    build_metrics: dict[str, Any]
    quality_gate_results: dict[str, QualityResult]
    test_results: dict[str, TestResult]
    security_scan_results: dict[str, SecurityResult]
    artifact_registry: dict[str, list[ArtifactRecord]]
    deployment_history: list[DeploymentRecord]
    generated_at: datetime
    status: RunStatus = RunStatus.COMPLETED


__all__ = [
    "ArtifactRecord",
    "DeploymentRecord",
    "QualityResult",
    "ReportSnapshot",
    "RunStatus",
    "SecurityResult",
    "TestResult",
]
