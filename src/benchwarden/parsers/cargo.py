"""Parser for Rust ``cargo bench`` output.

Handles the libtest bencher format, which criterion also prints with
``--output-format bencher``::

    test Node set ... bench:     210,840 ns/iter (+/- 802)
"""

from __future__ import annotations

import re

from benchwarden.core.types import Measurement
from benchwarden.parsers.base import make_measurement

_BENCH_LINE = re.compile(
    r"^test\s+(?P<name>.+?)\s+\.\.\.\s+bench:\s+(?P<value>\S+)\s+(?P<unit>\S+)"
    r"(?:\s+\(\+/-\s+(?P<range>[^)\s]+)\))?\s*$"
)


class CargoParser:
    """Parser for libtest / criterion bencher lines.

    Example:
        >>> CargoParser().parse_records("test Node set ... bench: 210,840 ns/iter (+/- 802)")
        [Measurement(name='Node set', value=210840, error_range=802.0, unit='ns/iter', extra=None)]
    """

    tool = "cargo"
    bigger_is_better = False

    def parse_records(self, text: str) -> list[Measurement]:
        measurements: list[Measurement] = []
        for line in text.splitlines():
            match = _BENCH_LINE.match(line.strip())
            if match is None:
                continue
            measurements.append(
                make_measurement(
                    self.tool,
                    name=match["name"],
                    value=match["value"],
                    unit=match["unit"],
                    error_range=match["range"],
                )
            )
        return measurements
