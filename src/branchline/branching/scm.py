"""Source-control collaborator interface.

The engine never shells out to git. A ``SourceControl`` implementation
supplies the branch and commit metadata; ``EnvironMetadataSource`` reads it
from the variables CI servers export.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from branchline.errors import ConfigurationError
from branchline.schemas.branch import CommitMetadata

BRANCH_VARIABLES = ("GIT_BRANCH", "BRANCH_NAME")


@runtime_checkable
class SourceControl(Protocol):
    """Supplies metadata for the branch being built."""

    def read_commit_metadata(self) -> CommitMetadata:
        """Return metadata for the current branch head.

        Raises:
            Exception: Any failure to obtain metadata; callers degrade.
        """
        ...


class EnvironMetadataSource:
    """Reads branch metadata from CI environment variables.

    Recognised variables: ``GIT_BRANCH`` (or ``BRANCH_NAME``),
    ``GIT_COMMIT``, ``GIT_COMMIT_MESSAGE``, ``GIT_AUTHOR_NAME``,
    ``GIT_AUTHOR_EMAIL`` and ``GIT_COMMIT_TIMESTAMP`` (epoch seconds).

    Examples:
        >>> source = EnvironMetadataSource({"GIT_BRANCH": "origin/main", "GIT_COMMIT": "a" * 40})
        >>> source.read_commit_metadata().name
        'origin/main'
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def read_commit_metadata(self) -> CommitMetadata:
        branch = next(
            (self._environ[var] for var in BRANCH_VARIABLES if self._environ.get(var)),
            None,
        )
        if branch is None:
            raise ConfigurationError(
                "Branch name is not available", field=" or ".join(BRANCH_VARIABLES)
            )
        commit = self._environ.get("GIT_COMMIT")
        if not commit:
            raise ConfigurationError("Commit hash is not available", field="GIT_COMMIT")

        return CommitMetadata(
            name=branch,
            commit_hash=commit,
            commit_message=self._environ.get("GIT_COMMIT_MESSAGE", ""),
            author=self._environ.get("GIT_AUTHOR_NAME", ""),
            author_email=self._environ.get("GIT_AUTHOR_EMAIL", ""),
            commit_timestamp=self._environ.get("GIT_COMMIT_TIMESTAMP") or None,
        )


__all__ = ["BRANCH_VARIABLES", "EnvironMetadataSource", "SourceControl"]
