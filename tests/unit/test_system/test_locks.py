"""
Unit tests for per-project locking.
"""

import threading
import time

import pytest

from aixbuild.system.locks import ProjectLockRegistry, get_lock_registry, reset_lock_registry
from aixbuild.validation import ProjectBusyError


@pytest.mark.unit
class TestProjectLockRegistry:
    """Test cases for ProjectLockRegistry."""

    def test_same_directory_shares_lock(self, tmp_path):
        registry = ProjectLockRegistry()
        (tmp_path / "p").mkdir()

        assert registry.get_lock(tmp_path / "p") is registry.get_lock(tmp_path / "p" / ".." / "p")
        assert registry.get_lock(tmp_path / "p") is not registry.get_lock(tmp_path)

    def test_reentrant(self, tmp_path):
        registry = ProjectLockRegistry()
        with registry.lock_for(tmp_path):
            with registry.lock_for(tmp_path, timeout=0.1):
                pass

    def test_busy_project_times_out(self, tmp_path):
        registry = ProjectLockRegistry()
        held = threading.Event()
        release = threading.Event()

        def holder():
            with registry.lock_for(tmp_path):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(5)
            with pytest.raises(ProjectBusyError):
                with registry.lock_for(tmp_path, timeout=0.1):
                    pass
        finally:
            release.set()
            thread.join(5)

    def test_second_caller_queues(self, tmp_path):
        registry = ProjectLockRegistry()
        order = []

        def worker(name, delay):
            with registry.lock_for(tmp_path):
                order.append(f"{name}-start")
                time.sleep(delay)
                order.append(f"{name}-end")

        first = threading.Thread(target=worker, args=("a", 0.3))
        first.start()
        time.sleep(0.1)
        second = threading.Thread(target=worker, args=("b", 0.0))
        second.start()
        first.join(5)
        second.join(5)

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    def test_global_registry(self):
        registry = get_lock_registry()
        assert get_lock_registry() is registry

        reset_lock_registry()
        assert get_lock_registry() is not registry
