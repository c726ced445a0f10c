"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern to ensure configuration is loaded only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import load_main_config
from .validators import validate_app_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[AppConfig] = None

# Default location of config.toml, relative to the source checkout.
# The CLI overrides it with --config.
_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    Clears the cached configuration so the next get_config() reads the new file.

    Args:
        config_path: Path to a config.toml file
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def get_config_path() -> Path:
    """Return the path get_config() reads from."""
    return _CONFIG_FILE_PATH


def clear_config_cache() -> None:
    """
    Clear the cached configuration, forcing a reload on next access.
    """
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path) -> AppConfig:
    """
    Load and validate the application configuration.

    A missing file is not an error: every setting has a default, so the
    built-in defaults are used and a warning is logged.

    Raises:
        ValidationError: If a configured value is invalid
        tomllib.TOMLDecodeError: If the file is malformed
    """
    try:
        data = load_main_config(config_path)
    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file; using built-in defaults",
            severity=ErrorSeverity.WARNING,
            reraise=False,
            logger=logger
        )
        return AppConfig()

    try:
        app_config = validate_app_config(data)
    except Exception as e:
        handle_config_error(
            error=e,
            context="validating configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise

    logger.info(
        f"Loaded configuration: toolchain={' '.join(app_config.toolchain.command)}, "
        f"build timeout={app_config.toolchain.build_timeout}s, "
        f"history cap={app_config.history.max_records}"
    )
    return app_config


def get_config() -> AppConfig:
    """
    Return the global AppConfig instance, loading it on first access.
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def set_config(config: AppConfig) -> None:
    """Install an already-built configuration, bypassing the file."""
    global _CONFIG
    _CONFIG = config
