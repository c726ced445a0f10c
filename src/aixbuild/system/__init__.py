"""
Operating-system level helpers: running the toolchain, stopping process
trees and serializing work on one project directory.
"""

from .locks import ProjectLockRegistry, get_lock_registry, reset_lock_registry
from .processes import collect_descendants, terminate_process_tree
from .runner import ProcessOutput, ProcessRunner, diagnostic_tail, redact_arguments

__all__ = [
    "ProjectLockRegistry",
    "get_lock_registry",
    "reset_lock_registry",
    "collect_descendants",
    "terminate_process_tree",
    "ProcessOutput",
    "ProcessRunner",
    "diagnostic_tail",
    "redact_arguments",
]
