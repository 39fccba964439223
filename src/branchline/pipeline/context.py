"""Explicit context handed to every stage action.

A stage action receives a ``StageContext`` instead of capturing a shared
pipeline object. The context exposes only what a stage may do: record
results into the run's tracker and read environment configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from branchline.environments.resolver import EnvironmentConfigResolver
    from branchline.pipeline.state import BuildStateTracker
    from branchline.schemas.environment import EnvironmentConfig
    from branchline.schemas.report import (
        ArtifactRecord,
        DeploymentRecord,
        SecurityResult,
        TestResult,
    )


@dataclass(frozen=True)
class StageContext:
    """Capabilities available to a running stage.

    Attributes:
        stage_name: Name the stage was registered under.
        environment: Target environment for deployment stages, else None.
    """

    stage_name: str
    environment: str | None
    _tracker: BuildStateTracker
    _resolver: EnvironmentConfigResolver | None = None

    def record_metric(self, key: str, value: Any) -> None:
        self._tracker.record_metric(key, value)

    def record_test_result(self, suite: str, result: TestResult | Mapping[str, Any]) -> None:
        self._tracker.record_test_result(suite, result)

    def record_security_result(
        self, scan: str, result: SecurityResult | Mapping[str, Any]
    ) -> None:
        self._tracker.record_security_result(scan, result)

    def record_quality_result(self, check: str, passed: bool, detail: Any = None) -> None:
        self._tracker.record_quality_result(check, passed, detail)

    def register_artifact(
        self, artifact_type: str, record: ArtifactRecord | Mapping[str, Any]
    ) -> ArtifactRecord:
        return self._tracker.register_artifact(artifact_type, record)

    def record_deployment(
        self, environment: str | None = None, detail: Mapping[str, Any] | None = None
    ) -> DeploymentRecord:
        """Record a deployment, defaulting to the stage's target environment."""
        target = environment or self.environment
        if target is None:
            raise ValueError(f"Stage {self.stage_name} has no target environment")
        return self._tracker.record_deployment(target, detail)

    def get_config(self, environment: str | None = None) -> EnvironmentConfig:
        """Resolved config for ``environment`` (default: the stage's target).

        Raises:
            UnknownEnvironmentError: If the environment is not resolved.
            ValueError: If no environment is given and none is targeted, or
                the pipeline has no resolver.
        """
        target = environment or self.environment
        if target is None:
            raise ValueError(f"Stage {self.stage_name} has no target environment")
        if self._resolver is None:
            raise ValueError("Pipeline was created without environment configuration")
        return self._resolver.get_config(target)


__all__ = ["StageContext"]
