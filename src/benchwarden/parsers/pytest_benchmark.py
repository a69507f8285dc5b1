"""Parser for pytest-benchmark JSON output (``--benchmark-json``).

Results are recorded as operations per second, so bigger is better.
pytest-benchmark reports the spread of the per-round time; it is
converted to the spread of the rate with the first-order approximation
``stddev / mean**2``.
"""

from __future__ import annotations

from typing import Any

from benchwarden.core.exceptions import MalformedOutputError
from benchwarden.core.types import Measurement
from benchwarden.parsers.base import load_json, make_measurement, to_number


class PytestBenchmarkParser:
    """Parser for pytest-benchmark JSON reports."""

    tool = "pytest"
    bigger_is_better = True

    def parse_records(self, text: str) -> list[Measurement]:
        data = load_json(self.tool, text)
        if not isinstance(data, dict) or not isinstance(data.get("benchmarks"), list):
            raise MalformedOutputError(self.tool, "expected an object with a 'benchmarks' list")

        return [self._parse_benchmark(bench) for bench in data["benchmarks"]]

    def _parse_benchmark(self, bench: Any) -> Measurement:
        if not isinstance(bench, dict) or not isinstance(bench.get("stats"), dict):
            raise MalformedOutputError(self.tool, "benchmark entry without 'stats'")

        name = str(bench.get("fullname") or bench.get("name") or "")
        stats = bench["stats"]
        if "mean" not in stats:
            raise MalformedOutputError(self.tool, f"benchmark '{name}' has no mean")

        mean = float(to_number(self.tool, name, stats["mean"]))
        stddev = float(to_number(self.tool, name, stats.get("stddev", 0)))
        if "ops" in stats:
            ops = float(to_number(self.tool, name, stats["ops"]))
        elif mean > 0:
            ops = 1.0 / mean
        else:
            raise MalformedOutputError(self.tool, f"benchmark '{name}' has a non-positive mean")

        return make_measurement(
            self.tool,
            name=name,
            value=ops,
            unit="iter/sec",
            error_range=stddev * ops * ops,
            extra=f"mean: {mean} sec\nrounds: {stats.get('rounds', '?')}",
        )
