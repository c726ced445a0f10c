"""
Unit tests for the build orchestrator.

Builds run the fake toolchain from tests/fixtures against a temporary
project, so every test exercises a real subprocess.
"""

import json
import threading
import time
from pathlib import Path

import psutil
import pytest

from aixbuild.executor import BuildOrchestrator
from aixbuild.models.build import BuildRequest
from aixbuild.progress import ArtifactPackaged, BuildCompleted, CompilationStarted, ProgressStream
from aixbuild.reporting import to_text
from aixbuild.validation import (
    ArtifactError,
    BuildCancelledError,
    PreconditionError,
    ProcessError,
    ProjectBusyError,
    SpawnError,
    ToolchainTimeoutError,
)


def invocations(project: Path):
    """Argument lists the fake toolchain received, oldest first."""
    log = project / "build" / "invocations.jsonl"
    return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]


def is_dead(pid: int, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def orchestrator(app_config, lock_registry):
    return BuildOrchestrator(config=app_config, lock_registry=lock_registry)


@pytest.mark.unit
class TestBuildExtension:
    """Test cases for plain builds."""

    def test_successful_build(self, orchestrator, project_dir):
        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert result.success, result.error
        assert result.target == "package"
        assert result.artifact.name == "SampleExtension.aix"
        assert result.artifact.path.is_file()
        assert result.artifact.size > 0
        assert result.duration_ms >= 0
        assert "BUILD SUCCESSFUL" in result.output
        assert result.events[0] == CompilationStarted(3)
        assert isinstance(result.events[1], ArtifactPackaged)
        assert result.events[-1] == BuildCompleted(str(result.artifact.path.resolve()))

    def test_build_is_recorded(self, orchestrator, project_dir):
        orchestrator.build_extension(BuildRequest(project_dir))

        records = orchestrator.history(project_dir).load()
        assert len(records) == 1
        assert records[0].success
        assert records[0].artifact.name == "SampleExtension.aix"

    def test_history_can_be_disabled(self, app_config, lock_registry, project_dir):
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry, record_history=False)
        orchestrator.build_extension(BuildRequest(project_dir))

        assert not (project_dir / ".aix-build-history.json").exists()

    def test_progress_stream(self, orchestrator, project_dir):
        stream = ProgressStream()

        result = orchestrator.build_extension(BuildRequest(project_dir), progress=stream)

        assert stream.closed
        assert tuple(stream) == result.events

    def test_properties_are_passed(self, orchestrator, project_dir):
        request = BuildRequest(project_dir, properties={"app.version": "1.2", "debug": "true"})

        orchestrator.build_extension(request)

        assert invocations(project_dir)[-1] == ["package", "-Dapp.version=1.2", "-Ddebug=true"]

    def test_clean_removes_stale_artifacts(self, orchestrator, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_ANT_NO_ANNOUNCE", "1")
        (project_dir / "dist").mkdir()
        (project_dir / "dist" / "Stale.aix").write_bytes(b"old")

        result = orchestrator.build_extension(BuildRequest(project_dir, clean=True))

        assert result.success, result.error
        assert sorted(p.name for p in (project_dir / "dist").iterdir()) == ["SampleExtension.aix"]

    def test_failed_build(self, orchestrator, project_dir):
        result = orchestrator.build_extension(BuildRequest(project_dir, target="fail"))

        assert not result.success
        assert isinstance(result.exception, ProcessError)
        assert result.exception.exit_code == 1
        assert "BUILD FAILED" in result.output
        assert result.artifact is None
        with pytest.raises(ProcessError):
            result.raise_for_error()

        records = orchestrator.history(project_dir).load()
        assert [r.success for r in records] == [False]

    def test_failure_report_quotes_toolchain_diagnostic(self, orchestrator, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_ANT_FAIL_TARGET", "package")

        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert "BUILD FAILED" in result.error
        assert "build.xml:12: target package failed" in result.error
        text = to_text(result)
        assert "BUILD FAILED" in text
        assert "\n  build.xml:12: target package failed" in text

    def test_unknown_target_fails(self, orchestrator, project_dir):
        result = orchestrator.build_extension(BuildRequest(project_dir, target="deploy"))

        assert not result.success
        assert "does not exist" in result.output

    def test_missing_project_is_precondition_error(self, orchestrator, tmp_path):
        missing = tmp_path / "missing"

        with pytest.raises(PreconditionError, match="Project directory does not exist"):
            orchestrator.build_extension(BuildRequest(missing))
        assert not missing.exists()

    def test_missing_descriptor_is_not_recorded(self, orchestrator, project_dir):
        (project_dir / "build.xml").unlink()

        with pytest.raises(PreconditionError, match="Build file not found"):
            orchestrator.build_extension(BuildRequest(project_dir))
        assert orchestrator.history(project_dir).load() == []

    def test_precondition_failure_closes_stream(self, orchestrator, tmp_path):
        stream = ProgressStream()
        with pytest.raises(PreconditionError):
            orchestrator.build_extension(BuildRequest(tmp_path / "missing"), progress=stream)
        assert stream.closed

    def test_spawn_failure(self, app_config, lock_registry, project_dir, tmp_path):
        app_config.toolchain.command = [str(tmp_path / "no-ant")]
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)

        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert not result.success
        assert isinstance(result.exception, SpawnError)


@pytest.mark.unit
class TestArtifactDiscovery:
    """Test cases for the artifact policy."""

    def test_announced_artifact_wins(self, orchestrator, project_dir):
        (project_dir / "dist").mkdir()
        (project_dir / "dist" / "Another.aix").write_bytes(b"other")

        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert result.success, result.error
        assert result.artifact.name == "SampleExtension.aix"

    def test_several_candidates_are_ambiguous(self, orchestrator, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_ANT_NO_ANNOUNCE", "1")
        (project_dir / "dist").mkdir()
        (project_dir / "dist" / "Another.aix").write_bytes(b"other")

        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert not result.success
        assert isinstance(result.exception, ArtifactError)
        assert "Another.aix, SampleExtension.aix" in result.error

    def test_single_candidate_without_announcement(self, orchestrator, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_ANT_NO_ANNOUNCE", "1")

        result = orchestrator.build_extension(BuildRequest(project_dir))

        assert result.success
        assert result.artifact.name == "SampleExtension.aix"

    def test_no_artifact(self, orchestrator, project_dir):
        result = orchestrator.build_extension(BuildRequest(project_dir, target="compile"))

        assert not result.success
        assert isinstance(result.exception, ArtifactError)

    def test_discovery_can_be_skipped(self, orchestrator, project_dir):
        result = orchestrator.build_extension(
            BuildRequest(project_dir, target="compile", discover_artifact=False)
        )

        assert result.success
        assert result.artifact is None


@pytest.mark.unit
class TestStoppingBuilds:
    """Test cases for timeouts, cancellation and concurrency."""

    def test_timeout_terminates_toolchain(self, app_config, lock_registry, project_dir):
        app_config.toolchain.build_timeout = 1.0
        app_config.toolchain.termination_grace = 0.5
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)

        result = orchestrator.build_extension(BuildRequest(project_dir, target="sleep"))

        assert not result.success
        assert isinstance(result.exception, ToolchainTimeoutError)
        assert is_dead(result.exception.pid)
        assert is_dead(int((project_dir / "grandchild.pid").read_text()))
        assert orchestrator.history(project_dir).load()[-1].success is False

    def test_cancellation(self, orchestrator, project_dir):
        cancel = threading.Event()
        timer = threading.Timer(0.5, cancel.set)
        timer.start()
        try:
            result = orchestrator.build_extension(
                BuildRequest(project_dir, target="sleep"), cancel_event=cancel
            )
        finally:
            timer.cancel()

        assert not result.success
        assert isinstance(result.exception, BuildCancelledError)

    def test_concurrent_builds_are_serialized(self, orchestrator, project_dir):
        results = []

        def build():
            results.append(orchestrator.build_extension(BuildRequest(project_dir, clean=True)))

        threads = [threading.Thread(target=build) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(60)

        assert len(results) == 3
        assert all(result.success for result in results), [r.error for r in results]
        assert len(orchestrator.history(project_dir).load()) == 3

    def test_busy_project(self, app_config, lock_registry, project_dir):
        app_config.toolchain.lock_timeout = 0.1
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)
        held = threading.Event()
        release = threading.Event()

        def holder():
            with lock_registry.lock_for(project_dir):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(5)
            with pytest.raises(ProjectBusyError):
                orchestrator.build_extension(BuildRequest(project_dir))
        finally:
            release.set()
            thread.join(5)


@pytest.mark.unit
class TestClean:
    """Test cases for clean()."""

    def test_clean_twice(self, orchestrator, project_dir):
        orchestrator.build_extension(BuildRequest(project_dir))
        assert any((project_dir / "dist").iterdir())

        for _ in range(2):
            orchestrator.clean(project_dir)
            for name in ("build", "dist"):
                directory = project_dir / name
                assert not directory.exists() or not any(directory.iterdir())

    def test_clean_missing_project(self, orchestrator, tmp_path):
        with pytest.raises(PreconditionError):
            orchestrator.clean(tmp_path / "missing")


@pytest.mark.unit
class TestSpecializedBuilds:
    """Test cases for coverage, optimized and signed builds."""

    def test_optimized_build(self, orchestrator, project_dir):
        result = orchestrator.build_optimized(BuildRequest(project_dir), "standard", obfuscate=True)

        assert result.success, result.error
        assert result.target == "package-optimized"
        assert invocations(project_dir)[-1] == [
            "package-optimized",
            "-Doptimize.enabled=true",
            "-Doptimize.level=standard",
            "-Doptimize.obfuscate=true",
            "-Doptimize.resources=false",
        ]

    def test_invalid_optimization_level(self, orchestrator, project_dir):
        stream = ProgressStream()
        with pytest.raises(PreconditionError):
            orchestrator.build_optimized(BuildRequest(project_dir), "maximum", progress=stream)
        assert stream.closed

    def test_signing_requires_keystore_and_alias(self, orchestrator, project_dir):
        with pytest.raises(PreconditionError, match="Keystore and alias are required"):
            orchestrator.sign_extension(BuildRequest(project_dir), "release.keystore", "")

    def test_signing_requires_existing_keystore(self, orchestrator, project_dir):
        with pytest.raises(PreconditionError, match="Keystore not found"):
            orchestrator.sign_extension(BuildRequest(project_dir), "missing.keystore", "release")

    def test_signed_build_hides_password(self, orchestrator, project_dir, caplog):
        keystore = project_dir / "release.keystore"
        keystore.write_bytes(b"keystore")

        result = orchestrator.sign_extension(
            BuildRequest(project_dir), keystore, "release", password="s3cret-pass"
        )

        assert result.success, result.error
        assert result.target == "package-signed"
        assert result.properties["sign.password"] == "******"
        assert result.properties["sign.alias"] == "release"
        assert "-Dsign.password=s3cret-pass" in invocations(project_dir)[-1]
        assert "s3cret-pass" not in caplog.text
        assert "s3cret-pass" not in (project_dir / ".aix-build-history.json").read_text()

    def test_coverage_requires_jacoco(self, orchestrator, project_dir):
        with pytest.raises(PreconditionError, match="JaCoCo not found"):
            orchestrator.build_with_coverage(BuildRequest(project_dir))

    def test_coverage_build(self, orchestrator, project_dir):
        (project_dir / "libs" / "jacocoagent-0.8.11.jar").write_bytes(b"PK")

        result = orchestrator.build_with_coverage(BuildRequest(project_dir))

        assert result.success, result.error
        assert result.target == "test-coverage"
        assert result.artifact is None
        assert result.coverage_report == project_dir / "coverage" / "index.html"
        assert "-Dcoverage.enabled=true" in invocations(project_dir)[-1]


@pytest.mark.unit
class TestQueries:
    """Test cases for the read-only queries."""

    def test_build_targets(self, orchestrator, project_dir):
        assert orchestrator.get_build_targets(project_dir) == [
            "clean", "compile", "package", "package-optimized", "package-signed", "test-coverage",
        ]

    def test_build_targets_without_descriptor(self, orchestrator, tmp_path):
        assert orchestrator.get_build_targets(tmp_path) == []

    def test_build_dependencies(self, orchestrator, project_dir):
        dependencies = orchestrator.get_build_dependencies(project_dir)

        assert [d.file_name for d in dependencies] == [
            "android.jar", "appinventor-components.jar", "gson-2.10.1.jar",
        ]
        gson = dependencies[-1]
        assert gson.name == "gson"
        assert gson.version == "2.10.1"
        assert gson.size_formatted == "4 KB"

    def test_build_stats(self, orchestrator, project_dir):
        orchestrator.build_extension(BuildRequest(project_dir))
        orchestrator.build_extension(BuildRequest(project_dir, target="fail"))

        stats = orchestrator.get_build_stats(project_dir)

        assert stats.project == "SampleExtension"
        assert stats.build_count == 2
        assert stats.success_count == 1
        assert stats.largest_artifact.name == "SampleExtension.aix"
