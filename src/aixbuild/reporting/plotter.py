"""
Interactive charts of a project's build history.

The history is flattened with polars, handed to Plotly as a pandas frame,
and written as a standalone HTML file.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
import plotly.graph_objects as go

from ..models.build import BuildRecord
from ..storage.history import records_to_dataframe

logger = logging.getLogger(__name__)

HISTORY_PLOT_NAME = "build_history"

_OUTCOME_COLORS = {"success": "seagreen", "failure": "indianred"}


def _prepare_history_frame(records: List[BuildRecord]) -> pd.DataFrame:
    """One row per build with its sequence number, duration in seconds and outcome."""
    df = records_to_dataframe(records).to_pandas()
    df.insert(0, "build", range(1, len(df) + 1))
    df["duration_sec"] = df["duration_ms"] / 1000.0
    df["outcome"] = df["success"].map({True: "success", False: "failure"})
    df["artifact_mb"] = df["artifact_size"] / (1024 * 1024)
    return df


def create_history_figure(df: pd.DataFrame, project_name: str) -> go.Figure:
    """
    Bar chart of build duration per build, coloured by outcome, with the
    artifact size on a secondary axis.

    Args:
        df: Frame produced by ``_prepare_history_frame``
        project_name: Used in the title

    Returns:
        A configured Plotly Figure
    """
    fig = go.Figure()

    for outcome, color in _OUTCOME_COLORS.items():
        subset = df[df["outcome"] == outcome]
        if subset.empty:
            continue
        fig.add_trace(
            go.Bar(
                x=subset["build"],
                y=subset["duration_sec"],
                name=f"Duration ({outcome})",
                marker_color=color,
                customdata=subset[["timestamp", "artifact_name"]],
                hovertemplate=(
                    "Build %{x}<br>%{customdata[0]}<br>"
                    "Duration: %{y:.2f} s<br>Artifact: %{customdata[1]}<extra></extra>"
                ),
            )
        )

    sized = df[df["artifact_mb"].notna()]
    if not sized.empty:
        fig.add_trace(
            go.Scatter(
                x=sized["build"],
                y=sized["artifact_mb"],
                name="Artifact size (MB)",
                marker_color="cornflowerblue",
                yaxis="y2",
                mode="lines+markers",
            )
        )

    fig.update_layout(
        title_text=f"Build History for '{project_name}'",
        xaxis=dict(title_text="Build", type="category"),
        yaxis=dict(title_text="Duration (seconds)"),
        yaxis2=dict(
            title_text="Artifact size (MB)",
            title_font=dict(color="cornflowerblue"),
            tickfont=dict(color="cornflowerblue"),
            overlaying="y",
            side="right",
        ),
        legend=dict(x=0.01, y=0.98, bordercolor="Black", borderwidth=1),
        barmode="overlay",
    )
    return fig


def plot_build_history(records: List[BuildRecord], output_dir: Union[str, Path],
                       project_name: str = "project") -> Optional[Path]:
    """
    Write the build history chart as ``build_history.html``.

    Args:
        records: History records in append order
        output_dir: Directory for the chart; created if missing
        project_name: Used in the chart title

    Returns:
        Path of the HTML file, or None when there is nothing to plot
    """
    if not records:
        logger.warning("No build history to plot")
        return None

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    fig = create_history_figure(_prepare_history_frame(records), project_name)
    plot_file = output_dir / f"{HISTORY_PLOT_NAME}.html"
    fig.write_html(plot_file)
    logger.info(f"Interactive plot saved to: {plot_file}")
    return plot_file
