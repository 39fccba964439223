"""Environment defaults and configuration resolution."""

from __future__ import annotations

from branchline.environments.defaults import DEFAULT_ENVIRONMENTS, PRODUCTION
from branchline.environments.resolver import EnvironmentConfigResolver, resolve_environments

__all__ = [
    "DEFAULT_ENVIRONMENTS",
    "EnvironmentConfigResolver",
    "PRODUCTION",
    "resolve_environments",
]
