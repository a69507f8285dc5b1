"""Parsers for hand-written benchmark results.

Any harness can be recorded by emitting a JSON array of results::

    [
      {"name": "parse 1MB", "value": 12.5, "unit": "ms", "range": "± 0.3"},
      {"name": "throughput", "value": 830, "unit": "req/s", "extra": "8 workers"}
    ]

``range`` is optional and may be a number or text such as ``"± 0.3"``.
The two registered tools differ only in the natural direction of values.
"""

from __future__ import annotations

from benchwarden.core.exceptions import MalformedOutputError
from benchwarden.core.types import Measurement
from benchwarden.history.models import parse_range
from benchwarden.parsers.base import load_json, make_measurement


class CustomParser:
    """Parser for JSON arrays of ``{name, value, unit, range?, extra?}``."""

    def __init__(self, tool: str, bigger_is_better: bool) -> None:
        self.tool = tool
        self.bigger_is_better = bigger_is_better

    def parse_records(self, text: str) -> list[Measurement]:
        data = load_json(self.tool, text)
        if not isinstance(data, list):
            raise MalformedOutputError(self.tool, "expected a JSON array of benchmark results")

        measurements: list[Measurement] = []
        for item in data:
            if not isinstance(item, dict):
                raise MalformedOutputError(self.tool, f"benchmark result must be an object, got {item!r}")
            missing = [key for key in ("name", "value", "unit") if key not in item]
            if missing:
                raise MalformedOutputError(self.tool, f"benchmark result is missing {', '.join(missing)}")

            raw_range = item.get("range")
            extra = item.get("extra")
            measurements.append(
                make_measurement(
                    self.tool,
                    name=str(item["name"]),
                    value=item["value"],
                    unit=str(item["unit"]),
                    error_range=parse_range(raw_range) if isinstance(raw_range, str) else raw_range,
                    extra=None if extra is None else str(extra),
                )
            )
        return measurements
