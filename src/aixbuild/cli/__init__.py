"""
Command-line interface for aixbuild.
"""

from .main import build_parser, main_cli

__all__ = ["build_parser", "main_cli"]
