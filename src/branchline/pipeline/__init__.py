"""Pipeline orchestration, run state and reporting."""

from __future__ import annotations

from branchline.pipeline.context import StageContext
from branchline.pipeline.orchestrator import (
    OrchestratorPhase,
    PipelineOrchestrator,
    StageAction,
    StageDescriptor,
    StageKind,
    StageOutcome,
)
from branchline.pipeline.report import ReportGenerator
from branchline.pipeline.state import BuildStateTracker

__all__ = [
    "BuildStateTracker",
    "OrchestratorPhase",
    "PipelineOrchestrator",
    "ReportGenerator",
    "StageAction",
    "StageContext",
    "StageDescriptor",
    "StageKind",
    "StageOutcome",
]
