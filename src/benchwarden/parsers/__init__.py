"""Benchmark output parsers for benchwarden.

This module turns the raw output of a benchmark harness into a
MeasurementBatch. Built-in tools:

- ``cargo``: Rust libtest / criterion bencher lines
- ``go``: ``go test -bench`` output
- ``pytest``: pytest-benchmark JSON
- ``googlecpp``: Google Benchmark JSON
- ``customSmallerIsBetter`` / ``customBiggerIsBetter``: JSON arrays of results

Example:
    >>> from benchwarden.parsers import parse
    >>> batch = parse("cargo", Path("output.txt").read_bytes(), commit, date=1666614539978)
"""

from __future__ import annotations

from benchwarden.parsers.base import (
    ParserProtocol,
    available_tools,
    get_parser,
    parse,
    register_parser,
)
from benchwarden.parsers.cargo import CargoParser
from benchwarden.parsers.custom import CustomParser
from benchwarden.parsers.go import GoParser
from benchwarden.parsers.googlecpp import GoogleBenchmarkParser
from benchwarden.parsers.pytest_benchmark import PytestBenchmarkParser

register_parser(CargoParser())
register_parser(GoParser())
register_parser(PytestBenchmarkParser())
register_parser(GoogleBenchmarkParser())
register_parser(CustomParser("customSmallerIsBetter", bigger_is_better=False))
register_parser(CustomParser("customBiggerIsBetter", bigger_is_better=True))

__all__ = [
    "CargoParser",
    "CustomParser",
    "GoParser",
    "GoogleBenchmarkParser",
    "ParserProtocol",
    "PytestBenchmarkParser",
    "available_tools",
    "get_parser",
    "parse",
    "register_parser",
]
