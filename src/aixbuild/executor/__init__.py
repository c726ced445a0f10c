"""
Build execution: the orchestrator that drives toolchain invocations.
"""

from .orchestrator import (
    COVERAGE_TARGET,
    OPTIMIZATION_LEVELS,
    OPTIMIZED_TARGET,
    SIGNED_TARGET,
    BuildOrchestrator,
)

__all__ = [
    "COVERAGE_TARGET",
    "OPTIMIZATION_LEVELS",
    "OPTIMIZED_TARGET",
    "SIGNED_TARGET",
    "BuildOrchestrator",
]
