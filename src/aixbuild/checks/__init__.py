"""
Project validation phases and the pipeline that runs them.
"""

from .code_quality import CodeQualityPhase
from .dependencies import DependencyPhase, list_jars, scan_dependencies
from .descriptor import DESCRIPTOR_RULES, DescriptorRule, check_descriptor_text, extract_targets
from .dry_run import DryRunPhase
from .environment import EnvironmentPhase, ToolProbe, default_probes
from .pipeline import ValidationOptions, ValidationPipeline
from .structure import StructurePhase

__all__ = [
    "CodeQualityPhase",
    "DependencyPhase",
    "DESCRIPTOR_RULES",
    "DescriptorRule",
    "DryRunPhase",
    "EnvironmentPhase",
    "StructurePhase",
    "ToolProbe",
    "ValidationOptions",
    "ValidationPipeline",
    "check_descriptor_text",
    "default_probes",
    "extract_targets",
    "list_jars",
    "scan_dependencies",
]
