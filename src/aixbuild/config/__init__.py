"""
Configuration management for the aixbuild package.

This module provides a singleton-based configuration system that loads
settings from conf/config.toml, validates each section, and falls back to
built-in defaults for anything that is not set.
"""

from .manager import (
    clear_config_cache,
    get_config,
    get_config_path,
    set_config,
    set_config_path,
)
from .loader import load_main_config, load_toml_file
from .validators import validate_app_config

__all__ = [
    "clear_config_cache",
    "get_config",
    "get_config_path",
    "set_config",
    "set_config_path",
    "load_main_config",
    "load_toml_file",
    "validate_app_config",
]
