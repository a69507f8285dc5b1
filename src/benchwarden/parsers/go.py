"""Parser for ``go test -bench`` output.

Each result line holds the benchmark name (with an optional ``-N``
GOMAXPROCS suffix), the iteration count, then value/unit pairs::

    BenchmarkFib10-8    3000000    410 ns/op    0 B/op    0 allocs/op

The first pair is the measurement; the iteration count, procs and the
remaining pairs are kept as extra details.
"""

from __future__ import annotations

import re

from benchwarden.core.exceptions import MalformedOutputError
from benchwarden.core.types import Measurement
from benchwarden.parsers.base import make_measurement

_BENCH_LINE = re.compile(r"^(?P<name>Benchmark\S*?)(?:-(?P<procs>\d+))?\s+(?P<times>\d+)\s+(?P<rest>.+)$")


class GoParser:
    """Parser for Go testing package benchmarks."""

    tool = "go"
    bigger_is_better = False

    def parse_records(self, text: str) -> list[Measurement]:
        measurements: list[Measurement] = []
        for line in text.splitlines():
            match = _BENCH_LINE.match(line.strip())
            if match is None:
                continue

            pieces = match["rest"].split()
            if len(pieces) < 2 or len(pieces) % 2:
                raise MalformedOutputError(self.tool, f"cannot read metrics of {match['name']}: {match['rest']!r}")
            pairs = [(pieces[i], pieces[i + 1]) for i in range(0, len(pieces), 2)]
            (value, unit), others = pairs[0], pairs[1:]

            extra = [f"{match['times']} times"]
            if match["procs"]:
                extra.append(f"{match['procs']} procs")
            extra.extend(f"{v} {u}" for v, u in others)

            measurements.append(
                make_measurement(
                    self.tool,
                    name=match["name"],
                    value=value,
                    unit=unit,
                    extra="\n".join(extra),
                )
            )
        return measurements
