"""JSON reporter for benchwarden.

This module provides JSON output for regression reports,
suitable for CI/CD pipelines and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from benchwarden.core.gating import EmitOutcome
    from benchwarden.regression.models import RegressionReport


class JSONReporter:
    """Reporter that outputs regression reports as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(report, outcome))
        {
          "timestamp": "2024-01-15T10:30:00+00:00",
          "report": {"suite": "Rust Benchmark", "verdicts": [...]},
          "outcome": {"status": "fail", "exit_code": 1, ...},
          "metadata": {}
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def to_dict(
        self,
        report: RegressionReport,
        outcome: EmitOutcome | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Convert a report and its outcome to a dictionary."""
        return {
            "timestamp": self._get_timestamp(),
            "report": report.to_dict(),
            "outcome": outcome.to_dict() if outcome is not None else None,
            "metadata": metadata or {},
        }

    def report(
        self,
        report: RegressionReport,
        outcome: EmitOutcome | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Generate a JSON report.

        Args:
            report: The regression report.
            outcome: The CI outcome decided for the report.
            metadata: Optional metadata to include in the report.

        Returns:
            JSON string representation of the report.
        """
        return json.dumps(self.to_dict(report, outcome, metadata), indent=self.indent, ensure_ascii=False)

    def report_to_file(
        self,
        report: RegressionReport,
        path: Path | str,
        outcome: EmitOutcome | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Write a JSON report to a file.

        Example:
            >>> reporter.report_to_file(report, Path("benchmark-report.json"), outcome)
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(report, outcome, metadata), encoding="utf-8")
