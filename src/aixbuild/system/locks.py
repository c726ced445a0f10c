"""
Per-project mutual exclusion.

Operations that mutate a project's build directories or history file hold
the lock of that project for their whole duration. Locks are keyed by the
resolved project path, so different spellings of one directory share a lock.
Callers queue: a second operation on the same project blocks until the first
one finishes, optionally bounded by a timeout.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from ..validation import ProjectBusyError

logger = logging.getLogger(__name__)


class ProjectLockRegistry:
    """
    Registry of re-entrant locks, one per resolved project path.

    Re-entrancy lets an operation that holds the lock call another locked
    operation on the same project (a build recording its own history).
    """

    def __init__(self, default_timeout: Optional[float] = None):
        """
        Args:
            default_timeout: Seconds to wait for a busy project; None waits forever
        """
        self.default_timeout = default_timeout
        self._locks: Dict[Path, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _key(project_path: Union[str, Path]) -> Path:
        return Path(project_path).resolve()

    def get_lock(self, project_path: Union[str, Path]) -> threading.RLock:
        """Return the lock of a project, creating it on first use."""
        key = self._key(project_path)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def lock_for(self, project_path: Union[str, Path],
                 timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the project's lock for the duration of the ``with`` block.

        Args:
            project_path: Project directory
            timeout: Overrides the registry's default timeout

        Raises:
            ProjectBusyError: If the lock is not acquired within the timeout
        """
        effective = self.default_timeout if timeout is None else timeout
        lock = self.get_lock(project_path)
        if effective is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=effective)
        if not acquired:
            raise ProjectBusyError(
                f"Project {project_path} is busy; lock not acquired within {effective} seconds"
            )
        logger.debug(f"Acquired project lock for {project_path}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Released project lock for {project_path}")


_global_lock_registry: Optional[ProjectLockRegistry] = None
_global_registry_guard = threading.Lock()


def get_lock_registry() -> ProjectLockRegistry:
    """
    Get the process-wide lock registry.

    Every orchestrator and history store shares it unless given its own, so
    that all operations on one project are serialized.
    """
    global _global_lock_registry
    with _global_registry_guard:
        if _global_lock_registry is None:
            _global_lock_registry = ProjectLockRegistry()
        return _global_lock_registry


def reset_lock_registry() -> None:
    """Drop the process-wide registry; the next get_lock_registry() creates a new one."""
    global _global_lock_registry
    with _global_registry_guard:
        _global_lock_registry = None
