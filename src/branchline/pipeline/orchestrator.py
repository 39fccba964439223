"""Pipeline orchestration.

``PipelineOrchestrator`` runs a registered set of stage actions in three
strictly ordered phases:

1. serial stages, in registration order, stopping at the first failure,
2. parallel stages, all submitted to a worker pool before any is awaited
   and all run to completion before failures are reported,
3. the quality gate over every recorded quality result (skippable).

Stages are registered before ``execute()``; the orchestrator is single-use.

Example:
    >>> orchestrator = PipelineOrchestrator(BuildStateTracker())
    >>> orchestrator.add_stage("build", lambda ctx: ctx.record_metric("built", True))
    >>> orchestrator.add_parallel_stage("unit-tests", run_unit_tests)  # doctest: +SKIP
    >>> [outcome.name for outcome in orchestrator.execute()]  # doctest: +SKIP
    ['build', 'unit-tests']
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from branchline.errors import (
    ConfigurationError,
    PipelineStateError,
    QualityGateFailedError,
    StageExecutionError,
)
from branchline.pipeline.context import StageContext
from branchline.pipeline.state import BuildStateTracker
from branchline.telemetry import create_span

if TYPE_CHECKING:
    from branchline.environments.resolver import EnvironmentConfigResolver
    from branchline.schemas.config import GlobalConfig

logger = structlog.get_logger(__name__)

StageAction = Callable[[StageContext], Any]


class StageKind(str, Enum):
    SERIAL = "serial"
    PARALLEL = "parallel"


class OrchestratorPhase(str, Enum):
    """Lifecycle of a pipeline run."""

    PENDING = "pending"
    SERIAL = "serial"
    PARALLEL = "parallel"
    QUALITY_GATE = "quality_gate"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StageDescriptor:
    """A registered stage.

    Attributes:
        name: Stage name (not required to be unique among serial stages).
        action: Callable invoked with the stage's ``StageContext``.
        kind: Serial or parallel.
        environment: Target environment for deployment stages.
    """

    name: str
    action: StageAction
    kind: StageKind
    environment: str | None = None


@dataclass(frozen=True)
class StageOutcome:
    """Result of running one stage."""

    name: str
    kind: StageKind
    succeeded: bool
    duration_ms: int


class PipelineOrchestrator:
    """Runs serial stages, then parallel stages, then the quality gate.

    Args:
        tracker: Ledger that stage actions record into.
        resolver: Environment configuration exposed to stages through
            ``StageContext.get_config``; required for deployment stages.
        quality_gate_enabled: Evaluate the quality gate after the stages.
        max_workers: Worker pool size for parallel stages (default: one
            worker per parallel stage).
    """

    def __init__(
        self,
        tracker: BuildStateTracker | None = None,
        resolver: EnvironmentConfigResolver | None = None,
        *,
        quality_gate_enabled: bool = True,
        max_workers: int | None = None,
    ) -> None:
        self.tracker = tracker if tracker is not None else BuildStateTracker()
        self.resolver = resolver
        self.quality_gate_enabled = quality_gate_enabled
        self.max_workers = max_workers

        self._serial: list[StageDescriptor] = []
        self._parallel: dict[str, StageDescriptor] = {}
        self._phase = OrchestratorPhase.PENDING
        self._lock = threading.Lock()
        self._log = logger.bind(
            quality_gate_enabled=quality_gate_enabled,
            build_number=self.tracker.build_metrics.get("build_number"),
        )

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        tracker: BuildStateTracker | None = None,
    ) -> PipelineOrchestrator:
        """Create an orchestrator wired to a resolved global configuration."""
        from branchline.environments.resolver import EnvironmentConfigResolver

        return cls(
            tracker,
            EnvironmentConfigResolver(config),
            quality_gate_enabled=config.quality_gate_enabled,
            max_workers=config.max_parallel_stages,
        )

    @property
    def phase(self) -> OrchestratorPhase:
        return self._phase

    @property
    def serial_stages(self) -> list[StageDescriptor]:
        return list(self._serial)

    @property
    def parallel_stages(self) -> list[StageDescriptor]:
        return list(self._parallel.values())

    def _ensure_pending(self, operation: str) -> None:
        if self._phase is not OrchestratorPhase.PENDING:
            raise PipelineStateError(operation, self._phase.value)

    def add_stage(self, name: str, action: StageAction) -> None:
        """Append a serial stage. Duplicate names are kept and run in order."""
        if not name:
            raise ValueError("Stage name must not be empty")
        with self._lock:
            self._ensure_pending("add stage")
            self._serial.append(StageDescriptor(name, action, StageKind.SERIAL))

    def add_parallel_stage(self, name: str, action: StageAction) -> None:
        """Register a parallel stage. Re-adding a name replaces its action."""
        if not name:
            raise ValueError("Stage name must not be empty")
        with self._lock:
            self._ensure_pending("add parallel stage")
            if name in self._parallel:
                self._log.debug("parallel_stage_replaced", stage=name)
            self._parallel[name] = StageDescriptor(name, action, StageKind.PARALLEL)

    def add_deployment_stage(self, environment: str, action: StageAction) -> None:
        """Append a serial ``deploy-{environment}`` stage targeting ``environment``.

        Raises:
            ConfigurationError: If the orchestrator has no resolver.
            UnknownEnvironmentError: If the environment is not resolved.
        """
        if self.resolver is None:
            raise ConfigurationError(
                "Deployment stages require environment configuration", field="resolver"
            )
        self.resolver.get_config(environment)
        with self._lock:
            self._ensure_pending("add deployment stage")
            self._serial.append(
                StageDescriptor(
                    f"deploy-{environment}", action, StageKind.SERIAL, environment=environment
                )
            )

    def _context_for(self, stage: StageDescriptor) -> StageContext:
        return StageContext(
            stage_name=stage.name,
            environment=stage.environment,
            _tracker=self.tracker,
            _resolver=self.resolver,
        )

    def _invoke(self, stage: StageDescriptor) -> tuple[StageOutcome, Exception | None]:
        """Run one stage action; never raises for action failures."""
        attributes: dict[str, Any] = {"stage.name": stage.name, "stage.kind": stage.kind.value}
        if stage.environment:
            attributes["stage.environment"] = stage.environment

        self._log.info("stage_started", stage=stage.name, kind=stage.kind.value)
        start_time = time.monotonic()
        error: Exception | None = None
        try:
            with create_span("branchline.stage", attributes=attributes) as span:
                stage.action(self._context_for(stage))
                span.set_attribute("duration_ms", int((time.monotonic() - start_time) * 1000))
        except Exception as e:
            error = e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        self.tracker.record_metric(f"stage.{stage.name}.duration_ms", duration_ms)
        if error is None:
            self._log.info("stage_completed", stage=stage.name, duration_ms=duration_ms)
        else:
            self._log.error(
                "stage_failed",
                stage=stage.name,
                duration_ms=duration_ms,
                error=str(error),
                error_type=type(error).__name__,
            )
        outcome = StageOutcome(stage.name, stage.kind, error is None, duration_ms)
        return outcome, error

    def _run_serial(self, outcomes: list[StageOutcome]) -> None:
        for stage in self._serial:
            outcome, error = self._invoke(stage)
            outcomes.append(outcome)
            if error is not None:
                raise StageExecutionError(stage.name, error) from error

    def _run_parallel(self, outcomes: list[StageOutcome]) -> None:
        stages = list(self._parallel.values())
        workers = min(self.max_workers or len(stages), len(stages))
        self._log.info("parallel_stages_started", stages=[s.name for s in stages], workers=workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="branchline-stage") as executor:
            futures = [(stage, executor.submit(self._invoke, stage)) for stage in stages]
            results = [(stage, future.result()) for stage, future in futures]

        failures: list[tuple[str, BaseException]] = []
        for stage, (outcome, error) in results:
            outcomes.append(outcome)
            if error is not None:
                failures.append((stage.name, error))

        self._log.info(
            "parallel_stages_completed",
            total=len(stages),
            failed=[name for name, _ in failures],
        )
        if failures:
            first_name, first_error = failures[0]
            raise StageExecutionError(first_name, first_error, failures) from first_error

    def evaluate_quality_gate(self) -> None:
        """Fail if any recorded quality result did not pass.

        Zero recorded results pass.

        Raises:
            QualityGateFailedError: Naming every failing check.
        """
        with create_span("branchline.quality_gate") as span:
            results = self.tracker.quality_gate_results
            failed = [name for name, result in results.items() if not result.passed]
            span.set_attribute("check_count", len(results))
            span.set_attribute("failed_count", len(failed))
            if failed:
                self._log.error("quality_gate_failed", failed_checks=failed)
                raise QualityGateFailedError(
                    failed, {name: results[name].detail for name in failed}
                )
            self._log.info("quality_gate_passed", check_count=len(results))

    def execute(self) -> list[StageOutcome]:
        """Run every registered stage, then the quality gate.

        Returns:
            Outcomes of all executed stages, serial first, then parallel in
            registration order.

        Raises:
            PipelineStateError: If the pipeline was already executed.
            StageExecutionError: If a stage action raised.
            QualityGateFailedError: If any quality check failed.
        """
        with self._lock:
            self._ensure_pending("execute")
            self._phase = OrchestratorPhase.SERIAL

        outcomes: list[StageOutcome] = []
        with create_span(
            "branchline.pipeline.execute",
            attributes={
                "serial_count": len(self._serial),
                "parallel_count": len(self._parallel),
                "quality_gate_enabled": self.quality_gate_enabled,
            },
        ) as span:
            start_time = time.monotonic()
            try:
                self._run_serial(outcomes)

                if self._parallel:
                    self._phase = OrchestratorPhase.PARALLEL
                    self._run_parallel(outcomes)

                if self.quality_gate_enabled:
                    self._phase = OrchestratorPhase.QUALITY_GATE
                    self.evaluate_quality_gate()
            except Exception:
                self._phase = OrchestratorPhase.FAILED
                span.set_attribute("status", "failed")
                raise

            self._phase = OrchestratorPhase.COMPLETED
            duration_ms = int((time.monotonic() - start_time) * 1000)
            span.set_attribute("status", "completed")
            span.set_attribute("duration_ms", duration_ms)
            self._log.info(
                "pipeline_completed",
                stage_count=len(outcomes),
                duration_ms=duration_ms,
            )
        return outcomes


__all__ = [
    "OrchestratorPhase",
    "PipelineOrchestrator",
    "StageAction",
    "StageDescriptor",
    "StageKind",
    "StageOutcome",
]
