"""CI gating for benchwarden.

This module turns a regression report into a CI outcome and publishes
the results: persisting the updated history and, when configured,
notifying an external sink.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from benchwarden.core.config import load_yaml_section
from benchwarden.regression.models import Verdict

if TYPE_CHECKING:
    from benchwarden.history.models import HistoryDocument
    from benchwarden.history.store import HistoryStore
    from benchwarden.notify import NotificationSink
    from benchwarden.regression.models import RegressionReport

logger = logging.getLogger(__name__)


class GatingResult(str, Enum):
    """Result of gating evaluation."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


EXIT_CODES: dict[GatingResult, int] = {
    GatingResult.PASS: 0,
    GatingResult.WARN: 0,
    GatingResult.FAIL: 1,
}


class EmitConfig(BaseModel):
    """Configuration deciding which regressions fail the build.

    Attributes:
        fail_on: Benchmarks whose regression fails the build. When set,
            regressions of other benchmarks only warn.
        fail_on_any_regression: When ``fail_on`` is unset, fail on any
            regression instead of warning.

    Example:
        >>> config = EmitConfig(fail_on=["Node set", "Node get"])
    """

    model_config = {"frozen": True}

    fail_on: list[str] | None = Field(default=None, description="Benchmarks whose regression fails")
    fail_on_any_regression: bool = Field(default=False, description="Fail on any regression")

    def fails(self, name: str) -> bool:
        """Whether a regression of ``name`` fails the build."""
        if self.fail_on is not None:
            return name in self.fail_on
        return self.fail_on_any_regression

    @classmethod
    def from_yaml(cls, path: Path | str) -> EmitConfig:
        """Load the ``emit`` section of a YAML configuration file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            EmitConfig loaded from the file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML is invalid or not a mapping.
        """
        return cls.model_validate(load_yaml_section(path, "emit"))

    def to_yaml(self, path: Path | str) -> None:
        """Save the configuration as the ``emit`` section of a YAML file.

        Args:
            path: Path to the output YAML file.
        """
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {"emit": self.model_dump(mode="json")}
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


class EmitOutcome(BaseModel):
    """CI outcome of one run.

    Attributes:
        status: The overall result (pass/warn/fail).
        exit_code: Exit code for CI (0=pass or warn, 1=fail).
        failed: Benchmarks whose regression fails the build.
        warned: Benchmarks that regressed without failing, or changed unit.
        summary: Human-readable summary.
    """

    model_config = {"frozen": True}

    status: GatingResult = Field(..., description="Overall result")
    exit_code: int = Field(..., ge=0, le=1, description="Exit code for CI")
    failed: list[str] = Field(default_factory=list, description="Failing benchmarks")
    warned: list[str] = Field(default_factory=list, description="Benchmarks with warnings")
    summary: str = Field(..., description="Human-readable summary")

    @property
    def names(self) -> list[str]:
        """Benchmarks responsible for the status."""
        if self.status == GatingResult.FAIL:
            return self.failed
        return self.warned

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "exit_code": self.exit_code,
            "failed": list(self.failed),
            "warned": list(self.warned),
            "summary": self.summary,
        }


class ReportEmitter:
    """Decides the CI outcome of a report and publishes the results.

    Exit codes:
    - 0: No regression, or only warnings
    - 1: At least one failing regression

    ``new-benchmark`` verdicts never affect the outcome.

    Attributes:
        config: The emit configuration.

    Example:
        >>> emitter = ReportEmitter(EmitConfig(fail_on_any_regression=True))
        >>> outcome = emitter.emit(report)
        >>> raise SystemExit(outcome.exit_code)
    """

    def __init__(self, config: EmitConfig | None = None) -> None:
        """Initialize ReportEmitter.

        Args:
            config: Emit configuration. Uses defaults if not provided.
        """
        self.config = config or EmitConfig()

    def emit(self, report: RegressionReport, config: EmitConfig | None = None) -> EmitOutcome:
        """Decide the outcome of a report.

        Args:
            report: Report produced by the regression detector.
            config: Overrides the emitter's configuration for this call.

        Returns:
            EmitOutcome with the status and the benchmarks behind it.
        """
        config = config or self.config
        failed: list[str] = []
        warned: list[str] = []

        for verdict in report.verdicts:
            if verdict.verdict == Verdict.REGRESSED:
                (failed if config.fails(verdict.name) else warned).append(verdict.name)
            elif verdict.verdict == Verdict.UNIT_CHANGED:
                warned.append(verdict.name)

        if failed:
            status = GatingResult.FAIL
            summary = f"Benchmark gating FAILED: regressions in {', '.join(failed)}"
        elif warned:
            status = GatingResult.WARN
            summary = f"Benchmark gating WARNING: {', '.join(warned)}"
        else:
            status = GatingResult.PASS
            summary = "No performance regression detected."

        return EmitOutcome(
            status=status,
            exit_code=EXIT_CODES[status],
            failed=failed,
            warned=warned,
            summary=summary,
        )

    async def publish(self, store: HistoryStore, doc: HistoryDocument, token: str) -> str:
        """Persist the updated document.

        Args:
            store: History store the document was loaded from.
            doc: Document with the new run appended.
            token: Revision token from the load.

        Returns:
            The new revision token.

        Raises:
            ConflictError: If another writer persisted since the load.
            StorageError: If the backend cannot be written.
        """
        return await store.persist(doc, token)

    async def notify(self, sink: NotificationSink | None, outcome: EmitOutcome, report: RegressionReport) -> None:
        """Send the outcome to a notification sink, if one is configured.

        Raises:
            NotificationError: If the sink fails to deliver.
        """
        if sink is None:
            return

        from benchwarden.reporters.markdown import MarkdownReporter

        summary = MarkdownReporter().report(report, outcome)
        await sink.notify(outcome, summary)
        logger.info(f"Sent {outcome.status.value} notification for {report.commit_id[:7]}")
