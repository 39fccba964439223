"""Run report export.

``ReportGenerator`` reads a ``BuildStateTracker`` and produces immutable
``ReportSnapshot`` exports, persists them as JSON and renders the
plain-text summary embedded in change tickets.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from branchline.pipeline.state import BuildStateTracker
from branchline.schemas.report import ReportSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_REPORT_PATH = "pipeline-report.json"


def render_summary(snapshot: ReportSnapshot) -> str:
    """Render the plain-text result summary of a snapshot.

    Example:
        >>> print(render_summary(tracker.snapshot()))  # doctest: +SKIP
        Quality Gate Results:
        - sonarqube: PASSED
        ...
    """
    sections = [
        (
            "Quality Gate Results:",
            [
                f"- {name}: {'PASSED' if result.passed else 'FAILED'}"
                for name, result in snapshot.quality_gate_results.items()
            ],
        ),
        (
            "Test Results Summary:",
            [
                f"- {name}: Passed {result.passed}, Failed {result.failed}"
                for name, result in snapshot.test_results.items()
            ],
        ),
        (
            "Security Scan Results:",
            [
                f"- {name}: {result.status}"
                for name, result in snapshot.security_scan_results.items()
            ],
        ),
        (
            "Artifact Information:",
            [
                f"- {kind}: {len(records)} artifacts"
                for kind, records in snapshot.artifact_registry.items()
            ],
        ),
        (
            "Deployment History:",
            [
                f"- #{record.sequence} {record.environment}: "
                f"{record.detail.get('status', 'UNKNOWN')}"
                for record in snapshot.deployment_history
            ],
        ),
    ]
    blocks = ["\n".join([title, *(lines or ["- none"])]) for title, lines in sections]
    return "\n\n".join(blocks)


def snapshot_to_json(snapshot: ReportSnapshot, *, indent: int | None = 4) -> str:
    """Serialize a snapshot with camelCase keys."""
    return snapshot.model_dump_json(by_alias=True, indent=indent)


class ReportGenerator:
    """Exports the state accumulated by a tracker.

    ``snapshot`` may be called any number of times per run; every call
    reflects all writes made to the tracker before it.

    Args:
        tracker: The run's state tracker.
    """

    def __init__(self, tracker: BuildStateTracker) -> None:
        self.tracker = tracker

    def snapshot(self) -> ReportSnapshot:
        return self.tracker.snapshot()

    def save(
        self,
        path: str | Path = DEFAULT_REPORT_PATH,
        snapshot: ReportSnapshot | None = None,
    ) -> Path:
        """Write a snapshot (default: a fresh one) as indented JSON to ``path``.

        Parent directories are created as needed.

        Returns:
            The path written.
        """
        snapshot = snapshot if snapshot is not None else self.snapshot()
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(snapshot_to_json(snapshot), encoding="utf-8")
        logger.info(
            "report_saved",
            path=str(target),
            deployments=len(snapshot.deployment_history),
        )
        return target

    def summary(self, snapshot: ReportSnapshot | None = None) -> str:
        return render_summary(snapshot if snapshot is not None else self.snapshot())


__all__ = ["DEFAULT_REPORT_PATH", "ReportGenerator", "render_summary", "snapshot_to_json"]
