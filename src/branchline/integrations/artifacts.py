"""Artifact repository integration.

An ``ArtifactStore`` performs the actual push/pull (docker CLI, registry
API, ...). ``ArtifactPublisher`` derives the fully qualified reference from
the environment's registry config and registers published artifacts in the
run's state tracker.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

import structlog

from branchline.environments.resolver import EnvironmentConfigResolver
from branchline.errors import ConfigurationError
from branchline.pipeline.state import BuildStateTracker
from branchline.schemas.report import ArtifactRecord
from branchline.telemetry import create_span

logger = structlog.get_logger(__name__)

DOCKER = "docker"
DEFAULT_DOCKER_REPOSITORY = "docker-releases"


@runtime_checkable
class ArtifactStore(Protocol):
    """Pushes and pulls fully qualified artifact references."""

    def push(self, reference: str) -> None: ...

    def pull(self, reference: str) -> str:
        """Fetch ``reference`` and return the local reference or path."""
        ...


def registry_host(url: str) -> str:
    """Strip the scheme and trailing slash from a registry URL.

    Examples:
        >>> registry_host("https://nexus.example.com/")
        'nexus.example.com'
        >>> registry_host("nexus.example.com:8443/dev")
        'nexus.example.com:8443/dev'
    """
    parts = urlsplit(url)
    if parts.netloc:
        return f"{parts.netloc}{parts.path}".rstrip("/")
    return url.rstrip("/")


class ArtifactPublisher:
    """Publishes images to the registry configured for an environment.

    Args:
        store: Push/pull transport.
        resolver: Resolved environment table.
        tracker: Run state that published artifacts are registered in.
    """

    def __init__(
        self,
        store: ArtifactStore,
        resolver: EnvironmentConfigResolver,
        tracker: BuildStateTracker,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.tracker = tracker

    def image_reference(self, name: str, tag: str, environment: str) -> str:
        """``{registry-host}/{docker-repository}/{name}:{tag}`` for an environment.

        Raises:
            UnknownEnvironmentError: If the environment is not resolved.
            ConfigurationError: If the environment has no registry URL.
        """
        registry = self.resolver.get_config(environment).registry
        if not registry.url:
            raise ConfigurationError(
                f"Registry URL is not configured for environment {environment}",
                field=f"environments.{environment}.registry.url",
            )
        repository = registry.repositories.get(DOCKER, DEFAULT_DOCKER_REPOSITORY)
        return f"{registry_host(registry.url)}/{repository}/{name}:{tag}"

    def publish_image(self, name: str, tag: str, environment: str) -> ArtifactRecord:
        """Push an image and register it as a ``docker`` artifact."""
        reference = self.image_reference(name, tag, environment)
        with create_span(
            "branchline.artifact.push",
            attributes={"artifact.reference": reference, "environment": environment},
        ):
            self.store.push(reference)

        logger.info("image_published", reference=reference, environment=environment)
        return self.tracker.register_artifact(
            DOCKER,
            ArtifactRecord(
                artifact_type=DOCKER,
                name=name,
                version=tag,
                metadata={"reference": reference, "environment": environment},
            ),
        )

    def pull_image(self, name: str, tag: str, environment: str) -> str:
        reference = self.image_reference(name, tag, environment)
        with create_span(
            "branchline.artifact.pull",
            attributes={"artifact.reference": reference, "environment": environment},
        ):
            local = self.store.pull(reference)
        logger.debug("image_pulled", reference=reference)
        return local


__all__ = [
    "ArtifactPublisher",
    "ArtifactStore",
    "DEFAULT_DOCKER_REPOSITORY",
    "registry_host",
]
