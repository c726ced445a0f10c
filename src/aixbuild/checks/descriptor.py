"""
Build descriptor checks.

The build descriptor is consumed by the external toolchain, so these checks
are pattern searches over its text rather than an XML parse. The patterns
live in one rule table; a rule passes when its pattern occurs anywhere in the
descriptor, so attributes may be split across lines.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from ..models.report import PhaseResult

REQUIRED_TARGETS = ("clean", "compile", "package")
REQUIRED_PROPERTIES = ("src.dir", "build.dir", "dist.dir", "libs.dir")

_TARGET_NAME = re.compile(r"<target\s+name=[\"']([^\"']+)[\"']")
_TARGET_DEPENDS = re.compile(
    r"<target\s+name=[\"']([^\"']+)[\"'](?:\s+depends=[\"']([^\"']+)[\"'])?"
)
_JAVA_LEVEL = {
    kind: re.compile(rf"\b{kind}=[\"'](\d+(?:\.\d+)?)[\"']") for kind in ("source", "target")
}


@dataclass(frozen=True)
class DescriptorRule:
    """One pattern the descriptor text must contain."""

    pattern: Pattern[str]
    message: str
    # "error" or "warning"
    severity: str = "warning"
    # Skip every later check when this rule fails.
    fatal: bool = False

    def passes(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _attribute_rule(element: str, name: str, message: str, severity: str = "warning") -> DescriptorRule:
    return DescriptorRule(
        pattern=re.compile(rf"<{element}\s+name=[\"']{re.escape(name)}[\"']"),
        message=message,
        severity=severity,
    )


DESCRIPTOR_RULES: List[DescriptorRule] = [
    DescriptorRule(
        pattern=re.compile(r"\A\s*<\?xml"),
        message="Build file does not start with XML declaration",
        severity="error",
    ),
    DescriptorRule(
        pattern=re.compile(r"<project\b"),
        message="Missing <project> element in build.xml",
        severity="error",
        fatal=True,
    ),
    *(
        _attribute_rule("target", target, f"Missing required target in build.xml: {target}", "error")
        for target in REQUIRED_TARGETS
    ),
    *(
        _attribute_rule("property", prop, f"Missing required property in build.xml: {prop}")
        for prop in REQUIRED_PROPERTIES
    ),
    DescriptorRule(
        pattern=re.compile(r"<classpath\b|\bclasspathref="),
        message="No classpath defined in build.xml",
    ),
    DescriptorRule(
        pattern=re.compile(r"\bencoding=[\"']UTF-8[\"']", re.IGNORECASE),
        message="Source encoding should be UTF-8",
    ),
]


def _level_value(level: str) -> float:
    # "1.8" and "11" compare as numbers; patch components are ignored.
    return float(".".join(level.split(".")[:2]))


def check_java_levels(text: str, recommended: str = "11") -> List[str]:
    """Warnings for missing or mismatched javac source and target levels.

    Only the first ``source=``/``target=`` attribute of each kind counts.
    Levels below ``recommended`` are flagged as too old; levels above it
    may not run on App Inventor.
    """
    warnings = []
    wanted = _level_value(recommended)
    for kind, pattern in _JAVA_LEVEL.items():
        match = pattern.search(text)
        if match is None:
            warnings.append(f"Missing Java {kind} version specification")
            continue
        level = match.group(1)
        if _level_value(level) < wanted:
            warnings.append(f"Java {kind} version {level} is below recommended {recommended}")
        elif _level_value(level) > wanted:
            warnings.append(f"Java {kind} version {level} may not be compatible with App Inventor")
    return warnings


def extract_property_value(text: str, name: str) -> Optional[str]:
    """Value of the first ``value=`` following the property name, or None."""
    match = re.search(rf"{re.escape(name)}[\"'\s]*value=[\"']([^\"']+)[\"']", text)
    return match.group(1) if match else None


def extract_targets(text: str) -> List[str]:
    """Target names in declaration order."""
    return _TARGET_NAME.findall(text)


def extract_target_dependencies(text: str) -> Dict[str, List[str]]:
    """Map each target to the targets listed in its ``depends`` attribute."""
    graph: Dict[str, List[str]] = {}
    for name, depends in _TARGET_DEPENDS.findall(text):
        graph[name] = [d.strip() for d in depends.split(",") if d.strip()] if depends else []
    return graph


def find_mutual_dependencies(graph: Dict[str, List[str]]) -> List[Tuple[str, str]]:
    """Pairs of targets that depend on each other, each pair reported once."""
    pairs = []
    seen = set()
    for target, deps in graph.items():
        for dep in deps:
            if dep == target or target not in graph.get(dep, []):
                continue
            key = frozenset((target, dep))
            if key not in seen:
                seen.add(key)
                pairs.append((target, dep))
    return pairs


def check_descriptor_text(text: str, rules: List[DescriptorRule] = DESCRIPTOR_RULES,
                          java_level: str = "11") -> PhaseResult:
    """Apply the rule table, the Java level check and the circular dependency check.

    A failed fatal rule ends the check with whatever has been reported so far.
    """
    result = PhaseResult(name="Build descriptor")
    for rule in rules:
        if rule.passes(text):
            continue
        if rule.severity == "error":
            result.error(rule.message)
        else:
            result.warn(rule.message)
        if rule.fatal:
            return result

    for warning in check_java_levels(text, java_level):
        result.warn(warning)
    for first, second in find_mutual_dependencies(extract_target_dependencies(text)):
        result.warn(f"Potential circular dependency between targets: {first} <-> {second}")
    return result
