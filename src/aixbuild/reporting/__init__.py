"""
Rendering of validation reports, build results and build history.
"""

from .formatter import format_stats_text, from_structured, to_document, to_structured, to_text
from .plotter import create_history_figure, plot_build_history

__all__ = [
    "create_history_figure",
    "format_stats_text",
    "from_structured",
    "plot_build_history",
    "to_document",
    "to_structured",
    "to_text",
]
