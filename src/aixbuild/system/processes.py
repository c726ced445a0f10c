"""
Process tree termination.

A toolchain run may fork compilers and JVMs of its own, so stopping it means
stopping every descendant as well as the process group the run was started
in. Termination escalates from SIGTERM to SIGKILL.
"""

import logging
import os
import signal
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)

# Seconds to wait for the kernel to reap SIGKILLed processes.
_KILL_WAIT = 1.0


def _is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def collect_descendants(pid: int) -> List[psutil.Process]:
    """
    Snapshot the live descendants of ``pid``.

    Must be taken before the parent dies: orphaned descendants are
    re-parented and can no longer be found from the original PID.
    """
    try:
        parent = psutil.Process(pid)
        return [child for child in parent.children(recursive=True) if _is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def _signal_all(processes: List[psutil.Process], force: bool) -> List[psutil.Process]:
    """Send SIGTERM (or SIGKILL when ``force``) and return the processes signalled."""
    signalled = []
    signal_name = "SIGKILL" if force else "SIGTERM"
    for process in processes:
        if not _is_process_alive(process):
            continue
        try:
            if force:
                process.kill()
            else:
                process.terminate()
            signalled.append(process)
            logger.debug(f"Sent {signal_name} to PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending {signal_name} to PID {process.pid}")
    return signalled


def _wait_for_termination(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    """Wait for processes to exit and return those still alive."""
    if not processes:
        return []
    _, still_alive = psutil.wait_procs(processes, timeout=timeout)
    return [p for p in still_alive if _is_process_alive(p)]


def _kill_process_group(pgid: int, name: str) -> None:
    try:
        os.killpg(pgid, signal.SIGKILL)
        logger.debug(f"Sent SIGKILL to process group {pgid} for {name}")
    except ProcessLookupError:
        pass
    except PermissionError:
        logger.debug(f"No permission to kill process group {pgid}")


def terminate_process_tree(
    pid: int,
    name: str = "process",
    grace_period: float = 3.0,
    descendants: Optional[List[psutil.Process]] = None,
    process_group: Optional[int] = None,
) -> None:
    """
    Terminate a process, all its descendants and its process group.

    Args:
        pid: PID of the root of the tree
        name: Label used in log messages
        grace_period: Seconds to wait after SIGTERM before SIGKILL
        descendants: A snapshot from collect_descendants(); taken here if omitted
        process_group: Process group to kill last, typically the PID of a
            process started in its own session
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return

    logger.info(f"Terminating {name} (PID: {pid}) and its process tree")

    try:
        root: Optional[psutil.Process] = psutil.Process(pid)
    except psutil.NoSuchProcess:
        root = None

    if descendants is None:
        descendants = collect_descendants(pid)

    # Children are refreshed between phases; they may fork while we signal.
    tree = ([root] if root is not None else []) + list(descendants)
    for force in (False, True):
        if root is not None and _is_process_alive(root):
            known = {p.pid for p in tree}
            tree.extend(p for p in collect_descendants(pid) if p.pid not in known)
        signalled = _signal_all(tree, force=force)
        if not signalled:
            break
        remaining = _wait_for_termination(signalled, _KILL_WAIT if force else grace_period)
        if not remaining:
            break
        if force:
            for process in remaining:
                logger.error(f"Process PID {process.pid} of {name} survived SIGKILL")
        else:
            logger.warning(f"{len(remaining)} processes of {name} ignored SIGTERM, escalating to SIGKILL")
        tree = remaining

    if process_group is not None:
        _kill_process_group(process_group, name)

    logger.info(f"Termination completed for {name} (PID: {pid})")
