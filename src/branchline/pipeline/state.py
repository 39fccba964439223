"""Per-run build state ledger.

``BuildStateTracker`` accumulates metrics, test/security/quality results,
registered artifacts and the deployment audit trail for one pipeline run.
Stage actions running on worker threads write to it concurrently, so every
logical table is guarded by its own lock. Deployment records get a
sequence number assigned under the history lock, which keeps the history
in call order.

Example:
    >>> tracker = BuildStateTracker()
    >>> tracker.record_quality_result("sonarqube", True, {"coverage": 87.5})
    >>> tracker.record_deployment("dev", {"status": "SUCCESS"}).sequence
    0
"""

from __future__ import annotations

import itertools
import os
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from branchline.schemas.report import (
    ArtifactRecord,
    DeploymentRecord,
    QualityResult,
    ReportSnapshot,
    RunStatus,
    SecurityResult,
    TestResult,
)

logger = structlog.get_logger(__name__)

# CI variable -> metric key seeded by from_environ.
ENVIRON_METRICS = {
    "BUILD_NUMBER": "build_number",
    "BUILD_ID": "build_id",
    "JOB_NAME": "job_name",
    "GIT_BRANCH": "git_branch",
    "GIT_COMMIT": "git_commit",
    "BUILD_CAUSE": "build_trigger",
}

ARTIFACT_FIELDS = ("name", "version")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BuildStateTracker:
    """Append/overwrite ledger for one pipeline run.

    Keyed tables (metrics, quality, test and security results) are
    last-write-wins per key. Artifacts are appended per type. Deployments
    are append-only and never overwritten.

    Args:
        metrics: Initial build metrics.
    """

    def __init__(self, metrics: Mapping[str, Any] | None = None) -> None:
        self._metrics: dict[str, Any] = dict(metrics or {})
        self._quality: dict[str, QualityResult] = {}
        self._tests: dict[str, TestResult] = {}
        self._security: dict[str, SecurityResult] = {}
        self._artifacts: dict[str, list[ArtifactRecord]] = {}
        self._deployments: list[DeploymentRecord] = []
        self._sequence = itertools.count()

        self._metrics_lock = threading.Lock()
        self._quality_lock = threading.Lock()
        self._tests_lock = threading.Lock()
        self._security_lock = threading.Lock()
        self._artifacts_lock = threading.Lock()
        self._deployments_lock = threading.Lock()

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> BuildStateTracker:
        """Create a tracker seeded from CI environment variables.

        Missing variables are recorded as ``"unknown"``.
        """
        environ = os.environ if environ is None else environ
        metrics: dict[str, Any] = {
            key: environ.get(var) or "unknown" for var, key in ENVIRON_METRICS.items()
        }
        metrics["start_time"] = _utcnow()
        metrics["build_duration"] = 0
        metrics["status"] = RunStatus.RUNNING.value
        logger.info(
            "build_state_initialized",
            build_number=metrics["build_number"],
            job_name=metrics["job_name"],
        )
        return cls(metrics)

    def record_metric(self, key: str, value: Any) -> None:
        with self._metrics_lock:
            self._metrics[key] = value

    def record_test_result(self, suite: str, result: TestResult | Mapping[str, Any]) -> None:
        """Record counts for a test suite, replacing any earlier result."""
        if not isinstance(result, TestResult):
            result = TestResult.model_validate({**result, "suite_name": suite})
        elif result.suite_name != suite:
            result = result.model_copy(update={"suite_name": suite})
        with self._tests_lock:
            self._tests[suite] = result

    def record_security_result(
        self, scan: str, result: SecurityResult | Mapping[str, Any]
    ) -> None:
        if not isinstance(result, SecurityResult):
            result = SecurityResult.model_validate({**result, "scan_name": scan})
        elif result.scan_name != scan:
            result = result.model_copy(update={"scan_name": scan})
        with self._security_lock:
            self._security[scan] = result

    def record_quality_result(self, check: str, passed: bool, detail: Any = None) -> None:
        """Record one quality check outcome read by the quality gate."""
        result = QualityResult(check_name=check, passed=passed, detail=detail)
        with self._quality_lock:
            self._quality[check] = result
        logger.debug("quality_result_recorded", check=check, passed=passed)

    def register_artifact(
        self, artifact_type: str, record: ArtifactRecord | Mapping[str, Any]
    ) -> ArtifactRecord:
        """Append an artifact to the list kept for its type.

        A flat mapping keeps ``name`` and ``version`` as fields; every other
        key is folded into ``metadata``.
        """
        if not isinstance(record, ArtifactRecord):
            payload = dict(record)
            metadata = dict(payload.pop("metadata", None) or {})
            fields = {key: payload.pop(key) for key in ARTIFACT_FIELDS if key in payload}
            payload.pop("artifact_type", None)
            metadata.update(payload)
            record = ArtifactRecord.model_validate(
                {**fields, "artifact_type": artifact_type, "metadata": metadata}
            )
        elif record.artifact_type != artifact_type:
            record = record.model_copy(update={"artifact_type": artifact_type})
        with self._artifacts_lock:
            self._artifacts.setdefault(artifact_type, []).append(record)
        logger.info(
            "artifact_registered",
            artifact_type=artifact_type,
            name=record.name,
            version=record.version,
        )
        return record

    def record_deployment(
        self, environment: str, detail: Mapping[str, Any] | None = None
    ) -> DeploymentRecord:
        """Append a timestamped deployment to the audit trail.

        The sequence number and append happen under one lock, so the
        history is always sorted by sequence.
        """
        with self._deployments_lock:
            record = DeploymentRecord(
                sequence=next(self._sequence),
                environment=environment,
                timestamp=_utcnow(),
                detail=dict(detail or {}),
            )
            self._deployments.append(record)
        logger.info(
            "deployment_recorded",
            environment=environment,
            sequence=record.sequence,
            status=record.detail.get("status"),
        )
        return record

    @property
    def build_metrics(self) -> dict[str, Any]:
        with self._metrics_lock:
            return dict(self._metrics)

    @property
    def quality_gate_results(self) -> dict[str, QualityResult]:
        with self._quality_lock:
            return dict(self._quality)

    @property
    def test_results(self) -> dict[str, TestResult]:
        with self._tests_lock:
            return dict(self._tests)

    @property
    def security_scan_results(self) -> dict[str, SecurityResult]:
        with self._security_lock:
            return dict(self._security)

    @property
    def artifact_registry(self) -> dict[str, list[ArtifactRecord]]:
        with self._artifacts_lock:
            return {kind: list(records) for kind, records in self._artifacts.items()}

    @property
    def deployment_history(self) -> list[DeploymentRecord]:
        with self._deployments_lock:
            return list(self._deployments)

    def snapshot(self) -> ReportSnapshot:
        """Export the current state. Pure read; safe to call repeatedly.

        The exported metrics carry ``end_time``, ``status=COMPLETED`` and,
        when ``start_time`` is known, ``build_duration`` in milliseconds.
        The tracker's own metrics are left untouched.
        """
        generated_at = _utcnow()
        metrics = self.build_metrics
        start_time = metrics.get("start_time")
        metrics["end_time"] = generated_at
        if isinstance(start_time, datetime) and start_time.tzinfo is not None:
            metrics["build_duration"] = int((generated_at - start_time).total_seconds() * 1000)
        metrics["status"] = RunStatus.COMPLETED.value

        return ReportSnapshot(
            build_metrics=metrics,
            quality_gate_results=self.quality_gate_results,
            test_results=self.test_results,
            security_scan_results=self.security_scan_results,
            artifact_registry=self.artifact_registry,
            deployment_history=self.deployment_history,
            generated_at=generated_at,
            status=RunStatus.COMPLETED,
        )


__all__ = ["ENVIRON_METRICS", "BuildStateTracker"]
