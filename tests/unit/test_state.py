"""Unit tests for BuildStateTracker."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest
from pydantic import ValidationError

from branchline.pipeline.state import BuildStateTracker
from branchline.schemas.report import ArtifactRecord, RunStatus, TestResult


class TestKeyedTables:
    """Tests for last-write-wins result tables."""

    def test_metric_overwrite(self, tracker: BuildStateTracker) -> None:
        tracker.record_metric("coverage", 71.0)
        tracker.record_metric("coverage", 87.5)

        assert tracker.build_metrics["coverage"] == 87.5

    def test_test_result_from_mapping(self, tracker: BuildStateTracker) -> None:
        tracker.record_test_result("unit", {"passed": 120, "failed": 2, "total": 122})

        result = tracker.test_results["unit"]
        assert result.suite_name == "unit"
        assert result.failed == 2

    def test_test_result_overwrites_by_suite(self, tracker: BuildStateTracker) -> None:
        tracker.record_test_result("unit", TestResult(suite_name="unit", passed=1))
        tracker.record_test_result("unit", TestResult(suite_name="unit", passed=5))

        assert tracker.test_results["unit"].passed == 5

    def test_test_result_takes_suite_name_from_key(self, tracker: BuildStateTracker) -> None:
        tracker.record_test_result("integration", TestResult(suite_name="other", passed=3))
        assert tracker.test_results["integration"].suite_name == "integration"

    def test_invalid_test_counts_rejected(self, tracker: BuildStateTracker) -> None:
        with pytest.raises(ValidationError):
            tracker.record_test_result("unit", {"failed": -1})

    def test_security_result(self, tracker: BuildStateTracker) -> None:
        tracker.record_security_result("trivy", {"status": "PASSED", "findings": []})
        tracker.record_security_result("trivy", {"status": "FAILED", "findings": ["CVE-1"]})

        result = tracker.security_scan_results["trivy"]
        assert result.status == "FAILED"
        assert result.findings == ["CVE-1"]

    def test_quality_result_overwrite(self, tracker: BuildStateTracker) -> None:
        tracker.record_quality_result("sonarqube", False, {"coverage": 40})
        tracker.record_quality_result("sonarqube", True, {"coverage": 85})

        result = tracker.quality_gate_results["sonarqube"]
        assert result.passed
        assert result.detail == {"coverage": 85}


class TestArtifacts:
    """Tests for the artifact registry."""

    def test_artifacts_append_per_type(self, tracker: BuildStateTracker) -> None:
        tracker.register_artifact("docker", {"name": "payments", "version": "1"})
        tracker.register_artifact("docker", {"name": "payments", "version": "2"})
        tracker.register_artifact(
            "maven", ArtifactRecord(artifact_type="maven", name="core", version="1.0")
        )

        registry = tracker.artifact_registry
        assert [record.version for record in registry["docker"]] == ["1", "2"]
        assert registry["docker"][0].artifact_type == "docker"
        assert len(registry["maven"]) == 1

    def test_flat_payload_extras_go_to_metadata(self, tracker: BuildStateTracker) -> None:
        record = tracker.register_artifact(
            "docker",
            {"name": "payments", "version": "1", "registry": "nexus", "digest": "sha256:x"},
        )

        assert record.name == "payments"
        assert record.version == "1"
        assert record.metadata == {"registry": "nexus", "digest": "sha256:x"}
        assert tracker.artifact_registry["docker"] == [record]

    def test_flat_payload_merges_explicit_metadata(self, tracker: BuildStateTracker) -> None:
        record = tracker.register_artifact(
            "npm",
            {
                "name": "ui",
                "version": "2.1.0",
                "artifact_type": "maven",
                "metadata": {"scope": "@payments"},
                "tarball": "ui-2.1.0.tgz",
            },
        )

        assert record.artifact_type == "npm"
        assert record.metadata == {"scope": "@payments", "tarball": "ui-2.1.0.tgz"}

    def test_record_type_follows_registry_key(self, tracker: BuildStateTracker) -> None:
        tracker.register_artifact(
            "docker", ArtifactRecord(artifact_type="maven", name="payments", version="1")
        )

        registry = tracker.artifact_registry
        assert registry["docker"][0].artifact_type == "docker"
        assert "maven" not in registry


class TestDeploymentHistory:
    """Tests for the append-only deployment history."""

    def test_history_is_append_only(self, tracker: BuildStateTracker) -> None:
        tracker.record_deployment("dev", {"status": "SUCCESS"})
        tracker.record_deployment("dev", {"status": "ROLLED_BACK"})

        history = tracker.deployment_history
        assert [record.detail["status"] for record in history] == ["SUCCESS", "ROLLED_BACK"]
        assert [record.sequence for record in history] == [0, 1]

    def test_records_are_timestamped(self, tracker: BuildStateTracker) -> None:
        record = tracker.record_deployment("sit")

        assert record.timestamp.tzinfo is not None
        assert record.detail == {}

    def test_concurrent_recording_keeps_sequence_order(self) -> None:
        tracker = BuildStateTracker()
        workers = 32
        barrier = threading.Barrier(workers)

        def deploy(index: int) -> None:
            barrier.wait(timeout=10)
            tracker.record_deployment(f"env-{index}", {"worker": index})

        threads = [threading.Thread(target=deploy, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        history = tracker.deployment_history
        sequences = [record.sequence for record in history]
        assert sequences == list(range(workers))
        assert {record.detail["worker"] for record in history} == set(range(workers))
        timestamps = [record.timestamp for record in history]
        assert timestamps == sorted(timestamps)


class TestAccessorsReturnCopies:
    """Tests that read accessors are isolated from tracker state."""

    def test_mutating_copies_does_not_affect_tracker(self, tracker: BuildStateTracker) -> None:
        tracker.register_artifact("docker", {"name": "payments", "version": "1"})
        tracker.record_deployment("dev")

        tracker.build_metrics["injected"] = True
        tracker.artifact_registry["docker"].clear()
        tracker.deployment_history.clear()

        assert "injected" not in tracker.build_metrics
        assert len(tracker.artifact_registry["docker"]) == 1
        assert len(tracker.deployment_history) == 1


class TestSnapshot:
    """Tests for BuildStateTracker.snapshot."""

    def test_snapshot_marks_completed(self, tracker: BuildStateTracker) -> None:
        snapshot = tracker.snapshot()

        assert snapshot.status is RunStatus.COMPLETED
        assert snapshot.build_metrics["status"] == "COMPLETED"
        assert isinstance(snapshot.build_metrics["end_time"], datetime)
        assert snapshot.generated_at == snapshot.build_metrics["end_time"]

    def test_snapshot_does_not_mutate_tracker(self, tracker: BuildStateTracker) -> None:
        tracker.snapshot()

        assert "end_time" not in tracker.build_metrics
        assert "status" not in tracker.build_metrics

    def test_snapshot_reflects_later_writes(self, tracker: BuildStateTracker) -> None:
        first = tracker.snapshot()
        tracker.record_quality_result("lint", True)
        tracker.record_deployment("dev", {"status": "SUCCESS"})
        second = tracker.snapshot()

        assert first.quality_gate_results == {}
        assert first.deployment_history == []
        assert list(second.quality_gate_results) == ["lint"]
        assert len(second.deployment_history) == 1


class TestFromEnviron:
    """Tests for seeding metrics from CI variables."""

    def test_seeds_metrics(self) -> None:
        tracker = BuildStateTracker.from_environ(
            {"BUILD_NUMBER": "7", "JOB_NAME": "payments", "GIT_BRANCH": "origin/main"}
        )
        metrics = tracker.build_metrics

        assert metrics["build_number"] == "7"
        assert metrics["job_name"] == "payments"
        assert metrics["git_branch"] == "origin/main"
        assert metrics["build_id"] == "unknown"
        assert metrics["build_trigger"] == "unknown"
        assert metrics["status"] == "RUNNING"
        assert metrics["build_duration"] == 0
        assert isinstance(metrics["start_time"], datetime)

    def test_snapshot_computes_duration(self) -> None:
        tracker = BuildStateTracker.from_environ({})

        snapshot = tracker.snapshot()

        assert snapshot.build_metrics["build_duration"] >= 0
        assert tracker.build_metrics["status"] == "RUNNING"
