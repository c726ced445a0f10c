"""
Pytest configuration and shared fixtures for the aixbuild test suite.

This module provides a temporary App Inventor extension project, a fake
toolchain that runs with the current interpreter, and configuration
objects wired to that toolchain.
"""

import sys
from pathlib import Path

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aixbuild.models.config import AppConfig, HistoryConfig, ProjectLayout, ToolchainConfig  # noqa: E402
from aixbuild.system.locks import ProjectLockRegistry  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_ANT = FIXTURES_DIR / "fake_ant.py"


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Sample project content
# ============================================================================

BUILD_XML = """<?xml version="1.0" encoding="UTF-8"?>
<project name="SampleExtension" default="package">
  <property name="src.dir" value="src"/>
  <property name="build.dir" value="build"/>
  <property name="dist.dir" value="dist"/>
  <property name="libs.dir" value="libs"/>

  <path id="classpath">
    <fileset dir="${libs.dir}" includes="*.jar"/>
  </path>

  <target name="clean">
    <delete dir="${build.dir}"/>
    <delete dir="${dist.dir}"/>
  </target>

  <target name="compile">
    <mkdir dir="${build.dir}/classes"/>
    <javac srcdir="${src.dir}" destdir="${build.dir}/classes" source="11" target="11"
           encoding="UTF-8" classpathref="classpath" includeantruntime="false"/>
  </target>

  <target name="package" depends="compile">
    <jar destfile="${dist.dir}/SampleExtension.aix" basedir="${build.dir}/classes"/>
  </target>

  <target name="package-optimized" depends="compile"/>
  <target name="package-signed" depends="package"/>
  <target name="test-coverage" depends="compile"/>
</project>
"""

EXTENSION_SOURCE = """package com.example.sample;

import com.google.appinventor.components.annotations.DesignerComponent;
import com.google.appinventor.components.annotations.SimpleEvent;
import com.google.appinventor.components.annotations.SimpleFunction;
import com.google.appinventor.components.annotations.SimpleProperty;
import com.google.appinventor.components.runtime.AndroidNonvisibleComponent;
import com.google.appinventor.components.runtime.ComponentContainer;
import com.google.appinventor.components.runtime.EventDispatcher;

@DesignerComponent(version = 1, description = "Sample extension")
public class SampleExtension extends AndroidNonvisibleComponent {
    private int counter;

    public SampleExtension(ComponentContainer container) {
        super(container.$form());
    }

    @SimpleFunction(description = "Adds two numbers")
    public int Add(int a, int b) {
        return a + b;
    }

    @SimpleProperty
    public int getCounter() {
        return counter;
    }

    @SimpleProperty
    public void setCounter(int value) {
        counter = value;
        CounterChanged(value);
    }

    @SimpleEvent
    public void CounterChanged(int value) {
        EventDispatcher.dispatchEvent(this, "CounterChanged", value);
    }
}
"""


def write_jar(path: Path, size: int = 4096) -> Path:
    """Write a non-empty placeholder jar."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"PK\x03\x04" + b"\x00" * max(size - 4, 0))
    return path


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def project_dir(tmp_path):
    """A complete, valid extension project."""
    root = tmp_path / "SampleExtension"
    (root / "src" / "com" / "example" / "sample").mkdir(parents=True)
    (root / "assets").mkdir()
    (root / "build.xml").write_text(BUILD_XML, encoding="utf-8")
    (root / "src" / "com" / "example" / "sample" / "SampleExtension.java").write_text(
        EXTENSION_SOURCE, encoding="utf-8"
    )
    write_jar(root / "libs" / "appinventor-components.jar")
    write_jar(root / "libs" / "android.jar")
    write_jar(root / "libs" / "gson-2.10.1.jar")
    return root


@pytest.fixture
def toolchain_command():
    """Command prefix that runs the fake toolchain."""
    return [sys.executable, str(FAKE_ANT)]


@pytest.fixture
def app_config(toolchain_command):
    """Configuration wired to the fake toolchain with short timeouts."""
    return AppConfig(
        toolchain=ToolchainConfig(
            command=toolchain_command,
            build_timeout=30.0,
            probe_timeout=10.0,
            dry_run_timeout=30.0,
            termination_grace=1.0,
        ),
        layout=ProjectLayout(),
        history=HistoryConfig(),
    )


@pytest.fixture
def lock_registry():
    """A lock registry private to one test."""
    return ProjectLockRegistry()


@pytest.fixture
def config_file(tmp_path, toolchain_command):
    """A config.toml wired to the fake toolchain."""
    command = ", ".join(f'"{part}"' for part in toolchain_command)
    path = tmp_path / "config.toml"
    path.write_text(
        f"""
[toolchain]
command = [{command}]
build_timeout_seconds = 30
dry_run_timeout_seconds = 30
termination_grace_seconds = 1

[history]
max_records = 50
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically reset configuration and global locks after each test."""
    yield

    from aixbuild.config import clear_config_cache, set_config_path
    from aixbuild.system.locks import reset_lock_registry

    clear_config_cache()
    reset_lock_registry()

    # Always reset to original config path
    set_config_path(Path(__file__).parent.parent / "conf" / "config.toml")
