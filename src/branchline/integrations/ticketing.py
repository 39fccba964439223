"""Change-management (ITSM) integration.

The engine never talks HTTP itself. A ``TicketingClient`` implementation
owns transport and credentials; ``ChangeManagement`` builds ServiceNow
shaped payloads from the run report, hands them over and records the
outcome in the run's audit trail.

Example:
    >>> changes = ChangeManagement(client, settings, project_name="payments", tracker=tracker)  # doctest: +SKIP
    >>> number = changes.open_change_request("prod", {"strategy": "blue-green"})  # doctest: +SKIP
    >>> changes.update_status(number, "IMPLEMENT", "Deployment approved for prod")  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Protocol, runtime_checkable

import structlog

from branchline.environments.defaults import PRODUCTION
from branchline.errors import ConfigurationError
from branchline.pipeline.report import render_summary, snapshot_to_json
from branchline.pipeline.state import BuildStateTracker
from branchline.schemas.config import DEFAULT_FIELD_MAPPINGS, ServiceNowSettings
from branchline.schemas.report import ReportSnapshot
from branchline.telemetry import create_span

logger = structlog.get_logger(__name__)

CHANGE_REQUEST_CREATED = "CHANGE_REQUEST_CREATED"
DEFAULT_REQUESTER = "pipeline"
DEFAULT_STRATEGY = "rolling-update"


class ChangeState(IntEnum):
    """ServiceNow change request state codes."""

    NEW = -5
    ASSESS = -4
    AUTHORIZE = -3
    SCHEDULED = -2
    IMPLEMENT = -1
    REVIEW = 0
    CLOSED = 3
    CANCELLED = 4


def state_code(status: str) -> int:
    """Map a status name (case-insensitive) to its state code; unknown -> NEW."""
    try:
        return ChangeState[status.upper()].value
    except KeyError:
        return ChangeState.NEW.value


@runtime_checkable
class TicketingClient(Protocol):
    """Transport to a change-management system."""

    def create_change_request(self, payload: Mapping[str, Any]) -> str:
        """Create a change request and return its number."""
        ...

    def update_change_request(self, number: str, payload: Mapping[str, Any]) -> None: ...

    def create_incident(self, payload: Mapping[str, Any]) -> str:
        """Create an incident and return its number."""
        ...


def _mapped_field(settings: ServiceNowSettings, key: str) -> str:
    return settings.field_mappings.get(key) or DEFAULT_FIELD_MAPPINGS[key]


def _build_number(snapshot: ReportSnapshot) -> str:
    return str(snapshot.build_metrics.get("build_number", "unknown"))


def change_request_description(
    project_name: str,
    environment: str,
    detail: Mapping[str, Any],
    snapshot: ReportSnapshot,
) -> str:
    metrics = snapshot.build_metrics
    header = "\n".join(
        [
            "Deployment Request Details:",
            f"- Application Name: {project_name}",
            f"- Target Environment: {environment.upper()}",
            f"- Build Number: {_build_number(snapshot)}",
            f"- Git Branch: {metrics.get('git_branch', 'unknown')}",
            f"- Git Commit: {metrics.get('git_commit', 'unknown')}",
            f"- Requester: {detail.get('requester') or DEFAULT_REQUESTER}",
            f"- Deployment Strategy: {detail.get('strategy') or DEFAULT_STRATEGY}",
        ]
    )
    return f"{header}\n\n{render_summary(snapshot)}"


def build_change_request_payload(
    settings: ServiceNowSettings,
    project_name: str,
    environment: str,
    detail: Mapping[str, Any],
    snapshot: ReportSnapshot,
) -> dict[str, Any]:
    """ServiceNow ``change_request`` payload. Production is higher risk."""
    production = environment == PRODUCTION
    return {
        "short_description": (
            f"Deployment Request: {project_name} to {environment.upper()} environment"
        ),
        "description": change_request_description(project_name, environment, detail, snapshot),
        "category": "Deployment",
        "subcategory": "Application Deployment",
        "priority": "2" if production else "3",
        "risk": "3" if production else "2",
        "impact": "2" if production else "3",
        "assignment_group": settings.assignment_group,
        "cmdb_ci": project_name,
        "type": "Standard",
        _mapped_field(settings, "application"): project_name,
        _mapped_field(settings, "environment"): environment,
        _mapped_field(settings, "build_number"): _build_number(snapshot),
        _mapped_field(settings, "git_commit"): snapshot.build_metrics.get("git_commit"),
        _mapped_field(settings, "pipeline_report"): snapshot_to_json(snapshot, indent=None),
        _mapped_field(settings, "deployment_strategy"): (
            detail.get("strategy") or DEFAULT_STRATEGY
        ),
        _mapped_field(settings, "approver"): detail.get("requester") or DEFAULT_REQUESTER,
    }


def build_incident_payload(
    settings: ServiceNowSettings,
    project_name: str,
    environment: str,
    issue: Mapping[str, Any],
    build_number: str = "unknown",
) -> dict[str, Any]:
    """ServiceNow ``incident`` payload. Production incidents are urgent."""
    production = environment == PRODUCTION
    level = "1" if production else "2"
    description = "\n".join(
        [
            "Deployment Issue Details:",
            f"- Application Name: {project_name}",
            f"- Environment: {environment.upper()}",
            f"- Build Number: {build_number}",
            f"- Issue Type: {issue.get('type') or 'Unknown'}",
            f"- Error Message: {issue.get('error') or 'No error message available'}",
            f"- Timestamp: {datetime.now(timezone.utc).isoformat()}",
            "",
            "Additional Details:",
            str(issue.get("details") or "No additional details provided"),
        ]
    )
    return {
        "short_description": (
            f"Deployment Issue: {project_name} in {environment.upper()} environment"
        ),
        "description": description,
        "category": "Deployment",
        "subcategory": "Application Deployment",
        "priority": level,
        "impact": level,
        "urgency": level,
        "assignment_group": settings.assignment_group,
        "cmdb_ci": project_name,
        _mapped_field(settings, "application"): project_name,
        _mapped_field(settings, "environment"): environment,
        _mapped_field(settings, "build_number"): build_number,
    }


class ChangeManagement:
    """Opens and tracks change tickets for deployments of one run.

    Args:
        client: Ticketing transport.
        settings: ServiceNow settings (assignment group, field mappings).
        project_name: Application name written into tickets.
        tracker: Run state; change requests are recorded as deployments.
    """

    def __init__(
        self,
        client: TicketingClient,
        settings: ServiceNowSettings,
        *,
        project_name: str,
        tracker: BuildStateTracker | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.project_name = project_name
        self.tracker = tracker
        self._log = logger.bind(project=project_name, ticketing_url=settings.url)

    def _current_snapshot(self, snapshot: ReportSnapshot | None) -> ReportSnapshot:
        if snapshot is not None:
            return snapshot
        if self.tracker is None:
            raise ConfigurationError(
                "A report snapshot or build state tracker is required", field="tracker"
            )
        return self.tracker.snapshot()

    def open_change_request(
        self,
        environment: str,
        detail: Mapping[str, Any] | None = None,
        snapshot: ReportSnapshot | None = None,
    ) -> str:
        """Create a change request for a deployment and return its number."""
        detail = detail or {}
        snapshot = self._current_snapshot(snapshot)
        payload = build_change_request_payload(
            self.settings, self.project_name, environment, detail, snapshot
        )
        with create_span(
            "branchline.change_request.create",
            attributes={"environment": environment},
        ) as span:
            number = self.client.create_change_request(payload)
            span.set_attribute("change_request", number)

        self._log.info("change_request_created", environment=environment, number=number)
        if self.tracker is not None:
            self.tracker.record_deployment(
                environment,
                {"status": CHANGE_REQUEST_CREATED, "change_request_number": number},
            )
        return number

    def update_status(self, number: str, status: str, notes: str = "") -> None:
        code = state_code(status)
        payload = {
            "state": str(code),
            "work_notes": notes
            or f"Status updated by pipeline at {datetime.now(timezone.utc).isoformat()}",
        }
        with create_span(
            "branchline.change_request.update",
            attributes={"change_request": number, "state": code},
        ):
            self.client.update_change_request(number, payload)
        self._log.info("change_request_updated", number=number, status=status.upper(), state=code)

    def report_incident(self, environment: str, issue: Mapping[str, Any]) -> str:
        """Create an incident for a failed deployment and return its number."""
        build_number = "unknown"
        if self.tracker is not None:
            build_number = str(self.tracker.build_metrics.get("build_number", "unknown"))
        payload = build_incident_payload(
            self.settings, self.project_name, environment, issue, build_number
        )
        with create_span("branchline.incident.create", attributes={"environment": environment}):
            number = self.client.create_incident(payload)
        self._log.warning(
            "incident_created",
            environment=environment,
            number=number,
            issue_type=issue.get("type"),
        )
        return number


__all__ = [
    "CHANGE_REQUEST_CREATED",
    "ChangeManagement",
    "ChangeState",
    "TicketingClient",
    "build_change_request_payload",
    "build_incident_payload",
    "state_code",
]
