"""Console reporter for benchwarden.

This module provides terminal output for regression reports,
with a per-benchmark table and status indicators.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from benchwarden.core.gating import GatingResult
from benchwarden.regression.models import Method, Verdict

if TYPE_CHECKING:
    from benchwarden.core.gating import EmitOutcome
    from benchwarden.regression.models import MeasurementVerdict, RegressionReport


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Status colors
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


VERDICT_STYLES: dict[Verdict, tuple[str, str]] = {
    Verdict.OK: ("✅", Colors.GREEN),
    Verdict.IMPROVED: ("🚀", Colors.GREEN),
    Verdict.REGRESSED: ("❌", Colors.RED),
    Verdict.NEW_BENCHMARK: ("🆕", Colors.BLUE),
    Verdict.UNIT_CHANGED: ("⚠️ ", Colors.YELLOW),
}


def format_value(value: float) -> str:
    """Format a measurement value for display.

    Example:
        >>> format_value(7000.0)
        '7000'
        >>> format_value(79.05694)
        '79.06'
    """
    if float(value).is_integer():
        return str(int(value))
    if abs(value) >= 1:
        return f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{value:.4g}"


def format_delta(verdict: MeasurementVerdict, method: Method) -> str:
    """Format the score of a verdict for display ("-" when none was computed).

    Example:
        >>> format_delta(verdict, Method.ZSCORE)
        '+25.30σ'
    """
    if verdict.delta is None:
        return "-"
    if method == Method.RATIO:
        return f"x{verdict.delta:.2f}"
    return f"{verdict.delta:+.2f}σ"


def format_baseline(verdict: MeasurementVerdict) -> str:
    """Format the baseline of a verdict as ``mean ± stddev``."""
    if verdict.baseline is None:
        return "-"
    return f"{format_value(verdict.baseline.mean)} ± {format_value(verdict.baseline.stddev)}"


class ConsoleReporter:
    """Reporter that outputs regression reports to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report(report, outcome)
          Benchmark   Value         Baseline       Delta     Verdict
          Node set    9000 ns/iter  7000 ± 79.06   +25.30σ   ❌ regressed
    """

    def __init__(
        self,
        use_colors: bool = True,
        output: TextIO | None = None,
    ) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.use_colors = use_colors and _supports_color(output or sys.stdout)
        self.output = output or sys.stdout

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    def report(self, report: RegressionReport, outcome: EmitOutcome | None = None) -> None:
        """Report the verdicts of a run and, if given, its CI outcome.

        Args:
            report: The regression report.
            outcome: The CI outcome decided for the report.
        """
        self.print_header(f"{report.suite} @ {report.commit_id[:7]}")
        self._print_verdicts_table(report)

        regressed = report.regressed
        if regressed:
            self._print(self._color("  Regressions:", Colors.BOLD))
            for verdict in regressed:
                self._print(f"    {self.describe_regression(verdict, report.method)}")
            self._print()

        for verdict in report.unit_changed:
            self.print_warning(f"{verdict.name}: unit changed from {verdict.previous_unit} to {verdict.unit}")

        if outcome is None:
            return
        if outcome.status == GatingResult.FAIL:
            self.print_error(outcome.summary)
        elif outcome.status == GatingResult.WARN:
            self.print_warning(outcome.summary)
        else:
            self.print_success(outcome.summary)

    def describe_regression(self, verdict: MeasurementVerdict, method: Method) -> str:
        """One-line description of a regressed measurement.

        Example:
            >>> reporter.describe_regression(verdict, Method.ZSCORE)
            'Node set: 9000 ns/iter vs baseline 7000 ± 79.06 ns/iter (window of 5), delta +25.30σ'
        """
        window = verdict.baseline.sample_size if verdict.baseline else 0
        return (
            f"{verdict.name}: {format_value(verdict.value)} {verdict.unit} "
            f"vs baseline {format_baseline(verdict)} {verdict.unit} (window of {window}), "
            f"delta {format_delta(verdict, method)}"
        )

    def _print_verdicts_table(self, report: RegressionReport) -> None:
        """Print one row per verdict, with aligned columns."""
        if not report.verdicts:
            self._print("  No measurements to report.")
            return

        headers = ("Benchmark", "Value", "Baseline", "Delta", "Verdict")
        rows = [
            (
                v.name,
                f"{format_value(v.value)} {v.unit}",
                format_baseline(v),
                format_delta(v, report.method),
                v.verdict,
            )
            for v in report.verdicts
        ]
        widths = [max(len(headers[i]), *(len(str(row[i])) for row in rows)) for i in range(4)]

        header = "   ".join(h.ljust(w) for h, w in zip(headers, widths)) + "   " + headers[4]
        self._print(self._color(f"  {header}", Colors.BOLD))
        for *cells, verdict in rows:
            emoji, color = VERDICT_STYLES[verdict]
            line = "   ".join(str(c).ljust(w) for c, w in zip(cells, widths))
            self._print(f"  {line}   {self._color(f'{emoji} {verdict.value}', color)}")
        self._print()

    def print_header(self, text: str) -> None:
        """Print a section header.

        Args:
            text: Header text to display.
        """
        self._print()
        self._print(self._color(f"{'=' * 50}", Colors.DIM))
        self._print(self._color(f"  {text}", Colors.BOLD + Colors.CYAN))
        self._print(self._color(f"{'=' * 50}", Colors.DIM))

    def print_success(self, text: str) -> None:
        """Print a success message."""
        self._print(self._color(f"  ✅ {text}", Colors.GREEN))

    def print_warning(self, text: str) -> None:
        """Print a warning message."""
        self._print(self._color(f"  ⚠️  {text}", Colors.YELLOW))

    def print_error(self, text: str) -> None:
        """Print an error message."""
        self._print(self._color(f"  ❌ {text}", Colors.RED))

    def print_info(self, text: str) -> None:
        """Print an info message."""
        self._print(self._color(f"  [i] {text}", Colors.BLUE))


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False

    import os

    if os.environ.get("NO_COLOR"):
        return False

    return os.environ.get("TERM") != "dumb"
