"""Markdown reporter for benchwarden.

This module renders a regression report as a Markdown table, suitable
for a pull request comment, a job summary or a webhook message.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from benchwarden.regression.models import Method, Verdict
from benchwarden.reporters.console import format_baseline, format_delta, format_value

if TYPE_CHECKING:
    from benchwarden.core.gating import EmitOutcome
    from benchwarden.regression.models import MeasurementVerdict, RegressionReport


STATUS_LABELS: dict[Verdict, str] = {
    Verdict.OK: "ok",
    Verdict.IMPROVED: "improvement",
    Verdict.REGRESSED: "REGRESSION",
    Verdict.NEW_BENCHMARK: "new",
    Verdict.UNIT_CHANGED: "unit changed",
}


class MarkdownReporter:
    """Reporter that outputs regression reports as Markdown.

    Example:
        >>> print(MarkdownReporter().report(report, outcome))
        ### Benchmark report: Rust Benchmark @ `a1b2c3d`
        <BLANKLINE>
        | benchmark | baseline | new | delta | status |
        |---|---:|---:|---:|---|
        | `Node set` | 7000 ± 79.06 ns/iter | 9000 ns/iter | +25.30σ | REGRESSION |
    """

    def report(self, report: RegressionReport, outcome: EmitOutcome | None = None) -> str:
        """Render a report.

        Args:
            report: The regression report.
            outcome: The CI outcome, added as a closing line when given.

        Returns:
            The Markdown text, ending with a newline.
        """
        lines: list[str] = []
        lines.append(f"### Benchmark report: {report.suite} @ `{report.commit_id[:7]}`")
        lines.append("")
        lines.append(f"Method: {report.method.value}, threshold: {self._threshold(report)}")
        lines.append("")
        lines.append("| benchmark | baseline | new | delta | status |")
        lines.append("|---|---:|---:|---:|---|")

        for verdict in report.verdicts:
            lines.append(self._row(verdict, report.method))

        lines.append("")
        if outcome is not None:
            lines.append(outcome.summary)
        elif report.has_regressions:
            lines.append("Performance regression detected.")
        else:
            lines.append("No regressions detected.")

        return "\n".join(lines) + "\n"

    def write(self, report: RegressionReport, path: Path | str, outcome: EmitOutcome | None = None) -> None:
        """Render a report into a file, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(report, outcome), encoding="utf-8")

    def _threshold(self, report: RegressionReport) -> str:
        if report.method == Method.RATIO:
            return f"{report.threshold * 100:.0f}%"
        return f"{format_value(report.threshold)}σ"

    def _row(self, verdict: MeasurementVerdict, method: Method) -> str:
        baseline = format_baseline(verdict)
        if verdict.baseline is not None:
            baseline = f"{baseline} {verdict.unit}"
        status = STATUS_LABELS[verdict.verdict]
        if verdict.verdict == Verdict.UNIT_CHANGED:
            status = f"unit changed ({verdict.previous_unit} → {verdict.unit})"

        return "| `{name}` | {baseline} | {new} | {delta} | {status} |".format(
            name=verdict.name,
            baseline=baseline,
            new=f"{format_value(verdict.value)} {verdict.unit}",
            delta=format_delta(verdict, method),
            status=status,
        )
