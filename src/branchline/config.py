"""YAML loader for the global configuration.

Reads a pipeline configuration file, parses it with ``yaml.safe_load`` and
validates it into a ``GlobalConfig``. Every failure (missing file, bad YAML,
schema violation) surfaces as a ``ConfigurationError`` naming the offending
field where one is known.

Example:
    >>> config = load_global_config(Path("pipeline.yaml"))  # doctest: +SKIP
    >>> config.project_name
    'payments'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from branchline.errors import ConfigurationError
from branchline.schemas.config import GlobalConfig

logger = structlog.get_logger(__name__)


def _parse_yaml(content: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {source}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration in {source} must be a mapping, got {type(data).__name__}"
        )
    return data


def _validate(data: dict[str, Any], source: str) -> GlobalConfig:
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        field_path = ""
        error_msg = "Validation failed"
        if errors:
            field_path = ".".join(str(loc) for loc in errors[0].get("loc", []))
            error_msg = str(errors[0].get("msg", "Invalid value"))
        raise ConfigurationError(
            f"Validation error in {source}: {error_msg}",
            field=field_path or None,
            errors=[
                f"{'.'.join(str(loc) for loc in err.get('loc', []))}: {err.get('msg', '')}"
                for err in errors
            ],
        ) from e


def parse_global_config(content: str, source: str = "<string>") -> GlobalConfig:
    """Parse and validate a YAML document into a ``GlobalConfig``.

    An empty document yields the all-defaults configuration.

    Raises:
        ConfigurationError: If the YAML is invalid or fails validation.
    """
    return _validate(_parse_yaml(content, source), source)


def load_global_config(path: str | Path) -> GlobalConfig:
    """Load and validate ``GlobalConfig`` from a YAML file.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated GlobalConfig instance.

    Raises:
        ConfigurationError: If the file is missing, the YAML is invalid, or
            validation fails.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}")

    config = parse_global_config(path.read_text(encoding="utf-8"), path.name)
    logger.info(
        "global_config_loaded",
        path=str(path),
        project=config.project_name,
        environments=[env.name for env in config.environments],
        branch_policies=list(config.branch_policies),
    )
    return config


__all__ = ["load_global_config", "parse_global_config"]
