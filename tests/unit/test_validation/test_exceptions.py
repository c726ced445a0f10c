"""
Unit tests for the error taxonomy, error handlers and input validators.
"""

import logging

import pytest

from aixbuild.models.build import BuildResult
from aixbuild.validation import (
    AixBuildError,
    ErrorSeverity,
    ProcessError,
    ToolchainTimeoutError,
    ValidationError,
    handle_cli_error,
    handle_error,
    validate_command,
    validate_enum_choice,
    validate_property_definition,
)


@pytest.mark.unit
class TestErrorTaxonomy:
    """Test cases for the exception classes."""

    def test_timeout_is_builtin_timeout(self):
        error = ToolchainTimeoutError("too slow", timeout=1.0, pid=42)

        assert isinstance(error, TimeoutError)
        assert isinstance(error, AixBuildError)
        assert error.pid == 42

    def test_process_error_keeps_streams(self):
        error = ProcessError("failed", exit_code=2, stdout="out\n", stderr="err\n")

        assert error.exit_code == 2
        assert error.output == "out\nerr\n"

    def test_raise_for_error(self):
        cause = ProcessError("failed", exit_code=1)
        result = BuildResult(success=False, target="package", duration_ms=5, error="failed", exception=cause)

        with pytest.raises(ProcessError):
            result.raise_for_error()

        BuildResult(success=True, target="package", duration_ms=5).raise_for_error()


@pytest.mark.unit
class TestErrorHandlers:
    """Test cases for handle_error and handle_cli_error."""

    def test_handle_error_logs_and_reraises(self, caplog):
        test_logger = logging.getLogger("aixbuild.test")

        with pytest.raises(ValueError):
            handle_error(ValueError("bad"), "parsing", logger=test_logger)

        assert "Error in parsing: bad" in caplog.text

    def test_handle_error_without_reraise(self, caplog):
        handle_error(
            RuntimeError("minor"),
            "cleanup",
            severity=ErrorSeverity.WARNING,
            reraise=False,
            logger=logging.getLogger("aixbuild.test"),
        )

        assert any(r.levelno == logging.WARNING and "minor" in r.message for r in caplog.records)

    def test_handle_cli_error_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ValueError("bad flag"), "argument parsing", exit_code=2)
        assert exc_info.value.code == 2


@pytest.mark.unit
class TestValidators:
    """Test cases for input validators."""

    def test_property_definition(self):
        assert validate_property_definition("sign.alias=release") == ("sign.alias", "release")
        assert validate_property_definition("empty=") == ("empty", "")
        assert validate_property_definition("url=a=b") == ("url", "a=b")

    @pytest.mark.parametrize("definition", ["novalue", "=value", ""])
    def test_property_definition_rejected(self, definition):
        with pytest.raises(ValidationError):
            validate_property_definition(definition)

    def test_command_forms(self):
        assert validate_command("ant -quiet") == ["ant", "-quiet"]
        assert validate_command(["ant"]) == ["ant"]
        with pytest.raises(ValidationError):
            validate_command("")
        with pytest.raises(ValidationError):
            validate_command(42)

    def test_enum_choice_case_insensitive(self):
        levels = ["none", "standard", "aggressive"]
        assert validate_enum_choice("Standard", levels, case_sensitive=False) == "standard"
        with pytest.raises(ValidationError):
            validate_enum_choice("maximum", levels)
