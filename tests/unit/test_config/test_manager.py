"""
Unit tests for configuration loading and the configuration singleton.
"""

import tomllib

import pytest

from aixbuild.config import (
    clear_config_cache,
    get_config,
    get_config_path,
    load_toml_file,
    set_config,
    set_config_path,
)
from aixbuild.models.config import AppConfig
from aixbuild.validation import ValidationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for get_config and friends."""

    def test_loads_file(self, config_file, toolchain_command):
        set_config_path(config_file)

        config = get_config()

        assert config.toolchain.command == toolchain_command
        assert config.toolchain.build_timeout == 30.0
        assert get_config_path() == config_file

    def test_config_is_cached(self, config_file):
        set_config_path(config_file)
        assert get_config() is get_config()

        clear_config_cache()
        assert get_config() is not None

    def test_missing_file_uses_defaults(self, tmp_path, caplog):
        set_config_path(tmp_path / "missing.toml")

        config = get_config()

        assert config == AppConfig()
        assert "using built-in defaults" in caplog.text

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[layout]\nartifact_suffix = "aix"\n', encoding="utf-8")
        set_config_path(path)

        with pytest.raises(ValidationError):
            get_config()

    def test_set_config_bypasses_file(self):
        custom = AppConfig()
        custom.history.max_records = 5
        set_config(custom)

        assert get_config().history.max_records == 5


@pytest.mark.unit
class TestLoader:
    """Test cases for TOML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_toml_file(tmp_path / "nope.toml")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[toolchain\ncommand = ", encoding="utf-8")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml_file(path)

    def test_shipped_config_is_valid(self):
        from pathlib import Path

        from aixbuild.config import validate_app_config

        shipped = Path(__file__).parents[3] / "conf" / "config.toml"
        config = validate_app_config(load_toml_file(shipped))

        assert config == AppConfig()
