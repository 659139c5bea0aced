"""Project-level installer configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import InstallerConfig
from .schemas import validate_against_schema

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".claude-instructions.yaml"


def load_installer_config(directory: Path | None = None) -> InstallerConfig:
    """Load ``.claude-instructions.yaml`` from a directory.

    Args:
        directory: Directory to look in, defaults to the current directory

    Returns:
        Parsed configuration, or defaults when the file does not exist

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated
    """
    config_path = (directory or Path.cwd()) / CONFIG_FILENAME
    if not config_path.is_file():
        return InstallerConfig()

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse {config_path}: {e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read {config_path}: {e}"
        raise ConfigurationError(msg) from e

    if data is None:
        data = {}

    validate_against_schema(data, "config", ConfigurationError, config_path)

    try:
        config = InstallerConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigurationError(msg) from e

    logger.debug("Loaded configuration from %s", config_path)
    return config
