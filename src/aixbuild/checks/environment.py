"""
Toolchain environment phase.

Each external tool is described by a ToolProbe: the command that prints its
version, the patterns that find the version in that output, and the minimum
supported version. Probes run through the ProcessRunner with a short
timeout; a probe that cannot run is an error for a mandatory tool and a
warning for an optional one.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from ..models.config import AppConfig
from ..models.report import PhaseResult
from ..system.runner import ProcessRunner
from ..validation import AixBuildError, ErrorSeverity, handle_subprocess_error

logger = logging.getLogger(__name__)

_VERSION_GROUP = r"(\d+(?:\.\d+)*)"


@dataclass(frozen=True)
class ToolProbe:
    """How to find and judge the version of one external tool."""

    # Display name used in findings, e.g. "Java".
    name: str
    command: Tuple[str, ...]
    mandatory: bool
    min_version: str
    version_patterns: Tuple[Pattern[str], ...]
    # Newer versions than this draw a warning; None disables the check.
    recommended_version: Optional[str] = None
    # A literal the output must contain to count as this tool at all.
    identity_token: Optional[str] = None
    home_variable: Optional[str] = None
    not_found_message: str = ""
    # Java reported 8 as "1.8"; map "1.x" to "x".
    legacy_major_prefix: bool = False


def parse_version(text: str) -> Tuple[int, ...]:
    """'1.10.12' -> (1, 10, 12)"""
    return tuple(int(part) for part in text.split("."))


def compare_versions(left: Sequence[int], right: Sequence[int]) -> int:
    """Three-way comparison, padding the shorter version with zeros."""
    width = max(len(left), len(right))
    a = tuple(left) + (0,) * (width - len(left))
    b = tuple(right) + (0,) * (width - len(right))
    return (a > b) - (a < b)


def extract_version(output: str, probe: ToolProbe) -> Optional[Tuple[int, ...]]:
    """Find the tool version in probe output, or None."""
    for pattern in probe.version_patterns:
        match = pattern.search(output)
        if not match:
            continue
        version = parse_version(match.group(1))
        if probe.legacy_major_prefix and len(version) > 1 and version[0] == 1:
            version = version[1:]
        return version
    return None


def format_version(version: Sequence[int]) -> str:
    return ".".join(str(part) for part in version)


def default_probes(config: AppConfig) -> List[ToolProbe]:
    """The Java, Ant and Kotlin probes, with Ant invoked through the configured toolchain command."""
    validation = config.validation
    return [
        ToolProbe(
            name="Java",
            command=("java", "-version"),
            mandatory=True,
            min_version=validation.java_min_version,
            recommended_version=validation.java_recommended_version,
            version_patterns=(re.compile(r'version "' + _VERSION_GROUP),),
            home_variable="JAVA_HOME",
            not_found_message="Java is not installed or not in PATH",
            legacy_major_prefix=True,
        ),
        ToolProbe(
            name="Ant",
            command=tuple(config.toolchain.command) + ("-version",),
            mandatory=True,
            min_version=validation.ant_min_version,
            version_patterns=(re.compile(r"Apache Ant(?:\(TM\))? version " + _VERSION_GROUP),),
            identity_token="Apache Ant",
            home_variable="ANT_HOME",
            not_found_message="Apache Ant is not installed or not in PATH",
        ),
        ToolProbe(
            name="Kotlin",
            command=("kotlinc", "-version"),
            mandatory=False,
            min_version=validation.kotlin_min_version,
            version_patterns=(
                re.compile(r"kotlinc-jvm " + _VERSION_GROUP),
                re.compile(r"Kotlin(?: Compiler)? version " + _VERSION_GROUP),
            ),
            not_found_message="Kotlin compiler is not installed or not in PATH",
        ),
    ]


class EnvironmentPhase:
    """Version probes for the external tools the build relies on."""

    name = "Environment"

    def __init__(self, runner: ProcessRunner, probes: Sequence[ToolProbe], timeout: float = 5.0):
        self.runner = runner
        self.probes = list(probes)
        self.timeout = timeout

    def run(self) -> PhaseResult:
        result = PhaseResult(name=self.name)
        for probe in self.probes:
            result.extend(self.check_tool(probe))
        return result

    def check_tool(self, probe: ToolProbe) -> PhaseResult:
        """Run one probe and judge its version."""
        result = PhaseResult(name=probe.name)
        report = result.error if probe.mandatory else result.warn

        if probe.home_variable and not os.environ.get(probe.home_variable):
            result.warn(f"{probe.home_variable} environment variable is not set")

        try:
            output = self.runner.execute(
                probe.command[0],
                probe.command[1:],
                timeout=self.timeout,
            ).output
        except AixBuildError as e:
            handle_subprocess_error(
                error=e,
                command=" ".join(probe.command),
                severity=ErrorSeverity.DEBUG,
                reraise=False,
                logger=logger,
            )
            report(probe.not_found_message or f"{probe.name} is not installed or not in PATH")
            return result

        if probe.identity_token and probe.identity_token not in output:
            result.warn(f"Could not determine {probe.name} version")
            return result

        version = extract_version(output, probe)
        if version is None:
            result.warn(f"Could not determine {probe.name} version")
            return result

        found = format_version(version)
        logger.info(f"Found {probe.name} {found}")
        minimum = parse_version(probe.min_version)
        if compare_versions(version, minimum) < 0:
            report(
                f"{probe.name} version {found} is not supported. "
                f"Please use {probe.name} {probe.min_version} or higher."
            )
        elif (probe.recommended_version is not None
              and compare_versions(version[:1], parse_version(probe.recommended_version)[:1]) > 0):
            result.warn(
                f"{probe.name} version {found} detected. "
                f"App Inventor recommends {probe.name} {probe.recommended_version}."
            )
        return result
