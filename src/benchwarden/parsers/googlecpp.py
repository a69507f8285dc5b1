"""Parser for Google Benchmark JSON output (``--benchmark_format=json``).

When a benchmark is repeated, Google Benchmark reports one row per
repetition plus aggregate rows (``_mean``, ``_stddev``...). The mean
aggregate becomes the value and the stddev aggregate its range. Without
aggregates, a single row is used as is and repeated rows are averaged.
"""

from __future__ import annotations

import statistics
from typing import Any

from benchwarden.core.exceptions import MalformedOutputError
from benchwarden.core.types import Measurement
from benchwarden.parsers.base import load_json, make_measurement, to_number


class GoogleBenchmarkParser:
    """Parser for Google Benchmark (C++) JSON reports."""

    tool = "googlecpp"
    bigger_is_better = False

    def parse_records(self, text: str) -> list[Measurement]:
        data = load_json(self.tool, text)
        if not isinstance(data, dict) or not isinstance(data.get("benchmarks"), list):
            raise MalformedOutputError(self.tool, "expected an object with a 'benchmarks' list")

        groups: dict[str, dict[str, Any]] = {}
        for row in data["benchmarks"]:
            if not isinstance(row, dict) or "name" not in row or "real_time" not in row:
                raise MalformedOutputError(self.tool, "benchmark row without 'name' or 'real_time'")
            run_name = str(row.get("run_name") or row["name"])
            group = groups.setdefault(run_name, {"runs": [], "mean": None, "stddev": None})
            if row.get("run_type") == "aggregate":
                aggregate = row.get("aggregate_name")
                if aggregate in ("mean", "stddev"):
                    group[aggregate] = row
            else:
                group["runs"].append(row)

        return [self._measure(name, group) for name, group in groups.items() if group["mean"] or group["runs"]]

    def _measure(self, name: str, group: dict[str, Any]) -> Measurement:
        runs: list[dict[str, Any]] = group["runs"]
        reference = group["mean"] or runs[0]
        unit = f"{reference.get('time_unit', 'ns')}/iter"

        if group["mean"] is not None:
            value = to_number(self.tool, name, group["mean"]["real_time"])
            spread = to_number(self.tool, name, group["stddev"]["real_time"]) if group["stddev"] else 0.0
        elif len(runs) == 1:
            value = to_number(self.tool, name, runs[0]["real_time"])
            spread = 0.0
        else:
            times = [float(to_number(self.tool, name, r["real_time"])) for r in runs]
            value = statistics.mean(times)
            spread = statistics.stdev(times)

        extra = [f"iterations: {reference.get('iterations', '?')}"]
        if "cpu_time" in reference:
            extra.append(f"cpu: {reference['cpu_time']} {reference.get('time_unit', 'ns')}")
        if "threads" in reference:
            extra.append(f"threads: {reference['threads']}")

        return make_measurement(
            self.tool,
            name=name,
            value=value,
            unit=unit,
            error_range=spread,
            extra="\n".join(extra),
        )
