"""Reporters module for benchwarden.

This module provides output formatters for regression reports:
- Console: Terminal output with a table and colors
- JSON: Machine-readable format
- Markdown: Pull request comments and job summaries
"""

from __future__ import annotations

from benchwarden.reporters.console import ConsoleReporter
from benchwarden.reporters.json import JSONReporter
from benchwarden.reporters.markdown import MarkdownReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
    "MarkdownReporter",
]
