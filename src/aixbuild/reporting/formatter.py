"""
Report rendering.

Pure functions that turn a ValidationReport or a BuildResult into plain
text, a structured JSON document, or a styled HTML page. Nothing here reads
the clock or touches the filesystem; a caller wanting a timestamp passes
``generated_at``.
"""

import html
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..file_utils import format_file_size
from ..models.build import BuildResult
from ..models.report import ValidationReport
from ..validation import ValidationError

Report = Union[ValidationReport, BuildResult]

VALIDATION_TITLE = "AIX Build Validation Report"
BUILD_TITLE = "AIX Build Report"

_DOCUMENT_STYLE = """
body { font-family: sans-serif; margin: 2em; color: #222; }
h1 { font-size: 1.4em; }
.valid { color: #2e7d32; font-weight: bold; }
.invalid { color: #c62828; font-weight: bold; }
.error { color: #c62828; }
.warning { color: #ef6c00; }
table.details td { padding: 0.2em 1em 0.2em 0; vertical-align: top; white-space: pre-wrap; }
pre.output { background: #f5f5f5; padding: 1em; overflow-x: auto; }
"""


def _format_duration(duration_ms: int) -> str:
    if duration_ms < 1000:
        return f"{duration_ms} ms"
    return f"{duration_ms / 1000:.2f} s"


def _numbered(title: str, items: List[str]) -> List[str]:
    lines = [f"{title} ({len(items)}):"]
    if not items:
        lines.append("  none")
    lines.extend(f"  {index}. {item}" for index, item in enumerate(items, start=1))
    return lines


def _build_details(result: BuildResult) -> List[tuple]:
    details = [
        ("Target", result.target),
        ("Duration", _format_duration(result.duration_ms)),
    ]
    if result.artifact is not None:
        details.append(("Artifact", f"{result.artifact.name} ({result.artifact.size_formatted})"))
        details.append(("Location", str(result.artifact.path)))
    if result.coverage_report is not None:
        details.append(("Coverage report", str(result.coverage_report)))
    if result.properties:
        details.append(("Properties", ", ".join(f"{k}={v}" for k, v in sorted(result.properties.items()))))
    if result.error:
        details.append(("Error", result.error))
    return details


def to_text(report: Report, generated_at: Optional[datetime] = None) -> str:
    """
    Render a report as plain text.

    Args:
        report: ValidationReport or BuildResult to render
        generated_at: Optional timestamp printed in the header

    Returns:
        Multi-line text ending with a newline
    """
    if isinstance(report, BuildResult):
        lines = [f"=== {BUILD_TITLE} ==="]
        if generated_at is not None:
            lines.append(f"Generated: {generated_at.isoformat()}")
        lines.append(f"Status: {'SUCCESS' if report.success else 'FAILED'}")
        # Indent continuation lines of multi-line values.
        lines.extend(
            f"{label}: " + str(value).replace("\n", "\n  ") for label, value in _build_details(report)
        )
        return "\n".join(lines) + "\n"

    lines = [f"=== {VALIDATION_TITLE} ==="]
    if report.project_path:
        lines.append(f"Project: {report.project_path}")
    if generated_at is not None:
        lines.append(f"Generated: {generated_at.isoformat()}")
    lines.append(f"Status: {'VALID' if report.valid else 'INVALID'}")
    lines.append("")
    lines.extend(_numbered("Errors", report.errors))
    lines.append("")
    lines.extend(_numbered("Warnings", report.warnings))
    return "\n".join(lines) + "\n"


def to_structured(report: Report) -> str:
    """
    Render a report as JSON.

    A ValidationReport yields exactly the keys ``valid``, ``errors`` and
    ``warnings`` so that ``from_structured`` can restore it.
    """
    if isinstance(report, BuildResult):
        data: Dict[str, Any] = {
            "success": report.success,
            "target": report.target,
            "durationMs": report.duration_ms,
            "artifact": report.artifact.to_dict() if report.artifact else None,
            "error": report.error,
            "properties": dict(report.properties),
            "coverageReport": str(report.coverage_report) if report.coverage_report else None,
        }
    else:
        data = {
            "valid": report.valid,
            "errors": list(report.errors),
            "warnings": list(report.warnings),
        }
    return json.dumps(data, indent=2)


def from_structured(text: str) -> ValidationReport:
    """
    Parse the output of ``to_structured`` for a ValidationReport.

    Raises:
        ValidationError: If the text is not a structured validation report
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Report is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Report must be a JSON object")
    for key in ("errors", "warnings"):
        value = data.get(key)
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValidationError(f"Report field '{key}' must be a list of strings", field_name=key)

    report = ValidationReport(errors=list(data["errors"]), warnings=list(data["warnings"]))
    if "valid" in data and data["valid"] != report.valid:
        raise ValidationError("Report field 'valid' contradicts its error list", field_name="valid")
    return report


def _html_list(items: List[str], css_class: str) -> str:
    if not items:
        return "<p>None</p>"
    entries = "".join(f'<li class="{css_class}">{html.escape(item)}</li>' for item in items)
    return f"<ol>{entries}</ol>"


def to_document(report: Report, generated_at: Optional[datetime] = None) -> str:
    """Render a report as a standalone HTML page; all report text is escaped."""
    if isinstance(report, BuildResult):
        title = BUILD_TITLE
        status_class = "valid" if report.success else "invalid"
        status = "SUCCESS" if report.success else "FAILED"
        rows = "".join(
            f"<tr><td>{html.escape(label)}</td><td>{html.escape(str(value))}</td></tr>"
            for label, value in _build_details(report)
        )
        body = f'<table class="details">{rows}</table>'
        if report.output:
            body += f'<h2>Output</h2><pre class="output">{html.escape(report.output)}</pre>'
    else:
        title = VALIDATION_TITLE
        status_class = "valid" if report.valid else "invalid"
        status = "VALID" if report.valid else "INVALID"
        body = ""
        if report.project_path:
            body += f"<p>Project: {html.escape(report.project_path)}</p>"
        body += (
            f"<h2>Errors ({len(report.errors)})</h2>{_html_list(report.errors, 'error')}"
            f"<h2>Warnings ({len(report.warnings)})</h2>{_html_list(report.warnings, 'warning')}"
        )

    generated = ""
    if generated_at is not None:
        generated = f"<p>Generated: {html.escape(generated_at.isoformat())}</p>"

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        f'<head><meta charset="utf-8"><title>{title}</title><style>{_DOCUMENT_STYLE}</style></head>\n'
        f"<body><h1>{title}</h1>{generated}"
        f'<p>Status: <span class="{status_class}">{status}</span></p>'
        f"{body}</body>\n"
        "</html>\n"
    )


def format_stats_text(stats) -> str:
    """Plain-text summary of a BuildStats."""
    lines = [
        f"=== Build statistics: {stats.project} ===",
        f"Builds: {stats.build_count}",
        f"Successful: {stats.success_count} ({stats.success_rate:.0%})",
        f"Average duration: {_format_duration(int(stats.average_duration_ms))}",
    ]
    if stats.last_build is not None:
        outcome = "success" if stats.last_build.success else "failure"
        lines.append(f"Last build: {stats.last_build.timestamp.isoformat()} ({outcome})")
    if stats.largest_artifact is not None:
        lines.append(f"Largest artifact: {stats.largest_artifact.name} "
                     f"({format_file_size(stats.largest_artifact.size)})")
    if stats.smallest_artifact is not None:
        lines.append(f"Smallest artifact: {stats.smallest_artifact.name} "
                     f"({format_file_size(stats.smallest_artifact.size)})")
    return "\n".join(lines) + "\n"
