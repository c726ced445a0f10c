"""
Code quality phase.

Heuristic, advisory scan of the extension sources: App Inventor imports,
annotation markers on the declarations App Inventor exposes, and a few
style smells. Findings are warnings only.

A declaration's "prelude" is the text between the previous statement or
block boundary and the declaration itself; annotations and modifiers of the
declaration live there.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Pattern

from ..file_utils import find_files
from ..models.config import ProjectLayout, ValidationConfig
from ..models.report import PhaseResult

logger = logging.getLogger(__name__)

REQUIRED_IMPORTS = (
    "com.google.appinventor.components.annotations",
    "com.google.appinventor.components.runtime",
)

_IGNORED_METHODS = {"toString", "equals", "hashCode"}
_TODO = re.compile(r"//\s*TODO\b|\bTODO\(")

_JAVA_METHOD = re.compile(r"public\s+(?:(?:static|final|synchronized)\s+)*\w+(?:<[^>]*>)?\s+(\w+)\s*\([^)]*\)")
_JAVA_GETTER = re.compile(r"public\s+\w+(?:<[^>]*>)?\s+(get\w+|is[A-Z]\w*)\s*\(\s*\)")
_JAVA_SETTER = re.compile(r"public\s+void\s+(set\w+)\s*\([^)]+\)")
_KOTLIN_FUNCTION = re.compile(r"\bfun\s+(\w+)\s*\([^)]*\)")


@dataclass(frozen=True)
class SmellRule:
    """A literal that should not appear in a source file of the given language."""

    token: str
    message: str
    suffixes: tuple


SMELL_RULES: List[SmellRule] = [
    SmellRule("System.out.println", "uses System.out.println (use logging instead)", (".java",)),
    SmellRule("println(", "uses println() (use logging instead)", (".kt",)),
    SmellRule(".printStackTrace()", "uses printStackTrace() (use proper logging)", (".java", ".kt")),
]


def declaration_prelude(content: str, start: int) -> str:
    """Text between the previous ``;``, ``{`` or ``}`` and ``start``."""
    boundary = max(content.rfind(ch, 0, start) for ch in ";{}")
    return content[boundary + 1:start]


def declaration_body(content: str, end: int) -> str:
    """The brace-delimited body following a declaration ending at ``end``, or ''."""
    open_at = content.find("{", end)
    # Abstract and interface declarations end in ";" before any body.
    if open_at == -1 or ";" in content[end:open_at]:
        return ""
    depth = 0
    for index in range(open_at, len(content)):
        if content[index] == "{":
            depth += 1
        elif content[index] == "}":
            depth -= 1
            if depth == 0:
                return content[open_at:index + 1]
    return content[open_at:]


class CodeQualityPhase:
    """Advisory source scan."""

    name = "Code quality"

    def __init__(self, layout: ProjectLayout, config: ValidationConfig):
        self.layout = layout
        self.config = config

    def run(self, project_path: Path) -> PhaseResult:
        result = PhaseResult(name=self.name)
        sources = find_files(project_path / self.layout.source_dir, self.layout.source_suffixes)
        for path in sources:
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                result.warn(f"Could not read {path.name}: {e}")
                continue
            for message in self.check_source(path.name, content):
                result.warn(message)
        logger.debug(f"Scanned {len(sources)} source files, {len(result.warnings)} findings")
        return result

    def check_source(self, file_name: str, content: str) -> List[str]:
        """Findings for one source file."""
        findings = []
        for import_path in REQUIRED_IMPORTS:
            if import_path not in content:
                findings.append(f"Missing import in {file_name}: {import_path}")

        if file_name.endswith(".java"):
            findings.extend(self._check_java_annotations(file_name, content))
        elif file_name.endswith(".kt"):
            findings.extend(self._check_kotlin_annotations(file_name, content))

        lines = content.splitlines()
        long_lines = sum(1 for line in lines if len(line) > self.config.max_line_length)
        if long_lines:
            findings.append(
                f"File {file_name} has {long_lines} lines exceeding "
                f"{self.config.max_line_length} characters"
            )
        todos = sum(1 for line in lines if _TODO.search(line))
        if todos:
            findings.append(f"File {file_name} has {todos} TODO comments")

        for rule in SMELL_RULES:
            if file_name.endswith(rule.suffixes) and rule.token in content:
                findings.append(f"File {file_name} {rule.message}")
        return findings

    @staticmethod
    def _scan(content: str, pattern: Pattern[str],
              flag: Callable[[str, str, str], Optional[str]]) -> List[str]:
        findings = []
        for match in pattern.finditer(content):
            prelude = declaration_prelude(content, match.start())
            body = declaration_body(content, match.end())
            message = flag(match.group(1), prelude, body)
            if message:
                findings.append(message)
        return findings

    def _check_java_annotations(self, file_name: str, content: str) -> List[str]:
        if "class " not in content:
            return []

        def function(name: str, prelude: str, body: str) -> Optional[str]:
            if name in _IGNORED_METHODS or name.startswith("_"):
                return None
            if any(marker in prelude for marker in
                   ("@SimpleFunction", "@SimpleProperty", "@SimpleEvent", "@Override")):
                return None
            if name.startswith(("get", "set", "is")):
                return None
            if "EventDispatcher." in body:
                return None
            return f"Method {name} in {file_name} may be missing @SimpleFunction annotation"

        def prop(kind: str) -> Callable[[str, str, str], Optional[str]]:
            def check(name: str, prelude: str, body: str) -> Optional[str]:
                if "@SimpleProperty" in prelude or "@Override" in prelude:
                    return None
                return f"{kind} {name} in {file_name} may be missing @SimpleProperty annotation"
            return check

        def event(name: str, prelude: str, body: str) -> Optional[str]:
            if "EventDispatcher." in body and "@SimpleEvent" not in prelude:
                return f"Method {name} in {file_name} may be missing @SimpleEvent annotation"
            return None

        findings = self._scan(content, _JAVA_METHOD, function)
        findings += self._scan(content, _JAVA_GETTER, prop("Getter"))
        findings += self._scan(content, _JAVA_SETTER, prop("Setter"))
        findings += self._scan(content, _JAVA_METHOD, event)
        return findings

    def _check_kotlin_annotations(self, file_name: str, content: str) -> List[str]:
        if "class " not in content:
            return []

        def function(name: str, prelude: str, body: str) -> Optional[str]:
            if name in _IGNORED_METHODS or name.startswith("_"):
                return None
            if any(word in prelude for word in ("private", "internal", "protected", "override")):
                return None
            if any(marker in prelude for marker in ("@SimpleFunction", "@SimpleProperty", "@SimpleEvent")):
                return None
            if "EventDispatcher." in body:
                return None
            return f"Function {name} in {file_name} may be missing @SimpleFunction annotation"

        def event(name: str, prelude: str, body: str) -> Optional[str]:
            if "EventDispatcher." in body and "@SimpleEvent" not in prelude:
                return f"Function {name} in {file_name} may be missing @SimpleEvent annotation"
            return None

        return (self._scan(content, _KOTLIN_FUNCTION, function)
                + self._scan(content, _KOTLIN_FUNCTION, event))
