"""
Unit tests for process tree termination.
"""

import os
import subprocess
import sys
import time

import psutil
import pytest

from aixbuild.system.processes import collect_descendants, terminate_process_tree

TREE_SCRIPT = (
    "import subprocess, sys, time\n"
    "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
    "print('ready', flush=True)\n"
    "time.sleep(60)\n"
)


def wait_until_dead(pid: int, timeout: float = 5.0) -> bool:
    """Zombies count as dead; an orphan may wait for its new parent to reap it."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        time.sleep(0.05)
    return False


@pytest.mark.unit
class TestTerminateProcessTree:
    """Test cases for terminate_process_tree."""

    def test_terminates_parent_and_children(self):
        process = subprocess.Popen(
            [sys.executable, "-c", TREE_SCRIPT],
            stdout=subprocess.PIPE,
            text=True,
            start_new_session=True,
        )
        try:
            assert process.stdout.readline().strip() == "ready"
            descendants = collect_descendants(process.pid)
            assert len(descendants) == 1

            terminate_process_tree(
                process.pid, name="test tree", grace_period=0.5,
                descendants=descendants, process_group=process.pid,
            )

            process.wait(timeout=5)
            for child in descendants:
                assert wait_until_dead(child.pid)
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
            process.stdout.close()

    def test_invalid_pid_is_ignored(self):
        terminate_process_tree(0, name="nothing")

    def test_missing_process(self):
        process = subprocess.Popen([sys.executable, "-c", "pass"])
        process.wait()

        terminate_process_tree(process.pid, name="finished", grace_period=0.1)
        assert collect_descendants(process.pid) == []

    def test_collect_descendants_of_self_excludes_self(self):
        assert all(p.pid != os.getpid() for p in collect_descendants(os.getpid()))
