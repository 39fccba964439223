"""Exception hierarchy for branchline.

All exceptions inherit from BranchlineError so callers can catch every
engine failure with a single except clause and map it to an exit code.

Exception Hierarchy:
    BranchlineError (base)
    ├── PolicyViolationError      # Branch not permitted for target environment
    ├── UnknownEnvironmentError   # Environment absent from the resolved table
    ├── ConfigurationError        # Required configuration missing or invalid
    ├── StageExecutionError       # A stage action raised
    ├── QualityGateFailedError    # One or more quality checks failed
    └── PipelineStateError        # Operation not allowed in the current phase

Exit Codes:
    1 - General error (BranchlineError)
    2 - Policy violation
    3 - Unknown environment
    4 - Configuration error
    5 - Stage execution failure
    6 - Quality gate failure
    7 - Pipeline state error

Example:
    >>> from branchline.errors import PolicyViolationError
    >>> raise PolicyViolationError("feature/x", "prod", ["dev"])
    Traceback (most recent call last):
        ...
    PolicyViolationError: Branch feature/x is not allowed to deploy to prod. Allowed environments: dev
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any


class BranchlineError(Exception):
    """Base exception for all branchline errors.

    Attributes:
        exit_code: CLI exit code for this error type (default: 1).
    """

    exit_code: int = 1


class PolicyViolationError(BranchlineError):
    """Raised when a branch is not permitted to deploy to an environment.

    Recoverable by the caller: pick another environment or branch.

    Attributes:
        branch: The branch name that was validated.
        environment: The requested target environment.
        allowed_environments: Environments the branch policy permits.
        exit_code: CLI exit code (2).
    """

    exit_code: int = 2

    def __init__(
        self,
        branch: str,
        environment: str,
        allowed_environments: Sequence[str],
    ) -> None:
        """Initialize PolicyViolationError.

        Args:
            branch: The branch name that was validated.
            environment: The requested target environment.
            allowed_environments: Environments the branch policy permits.
        """
        self.branch = branch
        self.environment = environment
        self.allowed_environments = list(allowed_environments)
        super().__init__(
            f"Branch {branch} is not allowed to deploy to {environment}. "
            f"Allowed environments: {', '.join(self.allowed_environments)}"
        )


class UnknownEnvironmentError(BranchlineError):
    """Raised when looking up an environment absent from the resolved table.

    Environment lookups never fall back to a default.

    Attributes:
        environment: The name that was looked up.
        available: Names present in the resolved table.
        exit_code: CLI exit code (3).
    """

    exit_code: int = 3

    def __init__(self, environment: str, available: Iterable[str]) -> None:
        self.environment = environment
        self.available = list(available)
        super().__init__(
            f"Environment {environment} configuration not found. "
            f"Available environments: {', '.join(self.available)}"
        )


class ConfigurationError(BranchlineError):
    """Raised when required configuration is missing or invalid.

    Attributes:
        message: Human-readable description of the problem.
        field: Dotted path of the offending field, when known.
        errors: Individual error strings (e.g. from environment validation).
        exit_code: CLI exit code (4).
    """

    exit_code: int = 4

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        errors: Sequence[str] | None = None,
    ) -> None:
        self.message = message
        self.field = field
        self.errors = list(errors or [])
        msg = message
        if field:
            msg = f"{message} (field: {field})"
        if self.errors:
            msg += ": " + "; ".join(self.errors)
        super().__init__(msg)


class StageExecutionError(BranchlineError):
    """Raised when a stage action fails.

    The original exception is available as ``cause`` and is also chained
    as ``__cause__``. For the parallel phase, ``failures`` holds every
    failing stage in registration order; ``stage`` names the first.

    Attributes:
        stage: Name of the stage whose action raised.
        cause: The exception raised by the action.
        failures: (stage name, exception) pairs for all failed stages.
        exit_code: CLI exit code (5).
    """

    exit_code: int = 5

    def __init__(
        self,
        stage: str,
        cause: BaseException,
        failures: Sequence[tuple[str, BaseException]] | None = None,
    ) -> None:
        self.stage = stage
        self.cause = cause
        self.failures = list(failures) if failures else [(stage, cause)]
        msg = f"Stage {stage} failed: {type(cause).__name__}: {cause}"
        if len(self.failures) > 1:
            others = ", ".join(name for name, _ in self.failures[1:])
            msg += f" (also failed: {others})"
        super().__init__(msg)


class QualityGateFailedError(BranchlineError):
    """Raised when the aggregate quality gate fails.

    Attributes:
        failed_checks: Names of every failing quality check.
        results: Detail payloads of the failing checks, keyed by name.
        exit_code: CLI exit code (6).
    """

    exit_code: int = 6

    def __init__(
        self,
        failed_checks: Sequence[str],
        results: dict[str, Any] | None = None,
    ) -> None:
        self.failed_checks = list(failed_checks)
        self.results = results or {}
        super().__init__(
            f"Quality gate failed: {', '.join(self.failed_checks)}. "
            "Check the reports and fix the issues"
        )


class PipelineStateError(BranchlineError):
    """Raised when an orchestrator operation is not allowed in its phase.

    Attributes:
        operation: The attempted operation.
        phase: The phase the orchestrator was in.
        exit_code: CLI exit code (7).
    """

    exit_code: int = 7

    def __init__(self, operation: str, phase: str) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(f"Cannot {operation} while pipeline is {phase}")


__all__ = [
    "BranchlineError",
    "ConfigurationError",
    "PipelineStateError",
    "PolicyViolationError",
    "QualityGateFailedError",
    "StageExecutionError",
    "UnknownEnvironmentError",
]
