"""CLI module for benchwarden.

This module provides the command-line interface using Typer.
"""

from __future__ import annotations

from benchwarden.cli.main import app

__all__ = ["app"]
