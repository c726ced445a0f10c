"""
End-to-end tests: validate a project, build it while a consumer follows the
progress stream, then read back the history and the reports.
"""

import asyncio
import shutil
import threading

import pytest

from aixbuild import (
    BuildOrchestrator,
    BuildRequest,
    ProgressStream,
    ValidationOptions,
    ValidationPipeline,
)
from aixbuild.progress import BuildCompleted, CompilationStarted
from aixbuild.reporting import from_structured, plot_build_history, to_structured, to_text


@pytest.mark.integration
class TestEndToEnd:
    """Validate, build and report on one project."""

    def test_validate_build_and_report(self, app_config, lock_registry, project_dir, tmp_path):
        pipeline = ValidationPipeline(config=app_config, lock_registry=lock_registry, probes=[])
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)

        report = pipeline.validate_all(
            project_dir, ValidationOptions(build=True, code_quality=True, parallel=True)
        )
        assert report.valid, report.errors
        assert from_structured(to_structured(report)).valid

        stream = ProgressStream()
        received = []
        consumer = threading.Thread(target=lambda: received.extend(stream))
        consumer.start()

        result = orchestrator.build_extension(BuildRequest(project_dir, clean=True), progress=stream)
        consumer.join(10)

        assert result.success, result.error
        assert received == list(result.events)
        assert isinstance(received[0], CompilationStarted)
        assert isinstance(received[-1], BuildCompleted)
        assert "Status: SUCCESS" in to_text(result)

        stats = orchestrator.get_build_stats(project_dir)
        assert stats.build_count == 1
        assert stats.largest_artifact.name == "SampleExtension.aix"

        chart = plot_build_history(orchestrator.history(project_dir).load(), tmp_path / "charts")
        assert chart.is_file()

    def test_async_progress_consumer(self, app_config, lock_registry, project_dir):
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)
        stream = ProgressStream()

        async def follow():
            return [event async for event in stream]

        async def main():
            loop = asyncio.get_running_loop()
            build = loop.run_in_executor(
                None, lambda: orchestrator.build_extension(BuildRequest(project_dir), progress=stream)
            )
            events = await follow()
            return await build, events

        result, events = asyncio.run(main())

        assert result.success, result.error
        assert events == list(result.events)

    def test_parallel_projects(self, app_config, lock_registry, project_dir, tmp_path):
        other = tmp_path / "OtherExtension"
        shutil.copytree(project_dir, other)
        orchestrator = BuildOrchestrator(config=app_config, lock_registry=lock_registry)
        results = {}

        def build(path):
            results[path.name] = orchestrator.build_extension(BuildRequest(path))

        threads = [threading.Thread(target=build, args=(path,)) for path in (project_dir, other)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(60)

        assert all(result.success for result in results.values())
        assert results["OtherExtension"].artifact.path.resolve().parent == (other / "dist").resolve()
