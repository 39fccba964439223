"""Capability interfaces to external systems (ticketing, artifact stores)."""

from __future__ import annotations

from branchline.integrations.artifacts import ArtifactPublisher, ArtifactStore
from branchline.integrations.ticketing import (
    ChangeManagement,
    ChangeState,
    TicketingClient,
    state_code,
)

__all__ = [
    "ArtifactPublisher",
    "ArtifactStore",
    "ChangeManagement",
    "ChangeState",
    "TicketingClient",
    "state_code",
]
