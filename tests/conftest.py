"""Shared pytest fixtures for branchline tests.

NOTE: Do NOT add __init__.py to test directories - pytest uses importlib mode
which can cause namespace collisions with __init__.py files.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from branchline.branching.classifier import BranchClassifier
from branchline.environments.resolver import EnvironmentConfigResolver
from branchline.pipeline.state import BuildStateTracker
from branchline.schemas.branch import CommitMetadata
from branchline.schemas.config import GlobalConfig
from branchline.telemetry import TRACER_NAME, reset_tracer, set_tracer

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def span_exporter() -> Generator[InMemorySpanExporter, None, None]:
    """Route branchline spans to an in-memory exporter for the test."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    set_tracer(TRACER_NAME, provider.get_tracer(TRACER_NAME))
    yield exporter
    reset_tracer()
    provider.shutdown()


@pytest.fixture
def global_config_data() -> dict[str, Any]:
    """A complete global configuration in the camelCase file format."""
    return {
        "projectName": "payments",
        "nexus": {
            "url": "https://nexus.example.com",
            "prodUrl": "https://nexus-prod.example.com",
            "repositories": {"helm": "helm-hosted"},
        },
        "sonarqube": {"url": "https://sonar.example.com"},
        "kubernetes": {"serverUrl": "https://k8s.example.com"},
        "monitoring": {"grafanaUrl": "https://grafana.example.com"},
        "serviceNow": {"url": "https://example.service-now.com"},
    }


@pytest.fixture
def global_config(global_config_data: dict[str, Any]) -> GlobalConfig:
    return GlobalConfig.model_validate(global_config_data)


@pytest.fixture
def resolver(global_config: GlobalConfig) -> EnvironmentConfigResolver:
    return EnvironmentConfigResolver(global_config)


@pytest.fixture
def classifier() -> BranchClassifier:
    return BranchClassifier()


@pytest.fixture
def tracker() -> BuildStateTracker:
    return BuildStateTracker(
        {
            "build_number": "42",
            "git_branch": "main",
            "git_commit": "0123456789abcdef",
        }
    )


@pytest.fixture
def make_metadata() -> Any:
    """Factory for CommitMetadata with a fixed commit hash."""

    def _make(name: str, commit_hash: str = "abc123def4567890") -> CommitMetadata:
        return CommitMetadata(
            name=name,
            commit_hash=commit_hash,
            commit_message="Add feature",
            author="Dev One",
            author_email="dev@example.com",
        )

    return _make
