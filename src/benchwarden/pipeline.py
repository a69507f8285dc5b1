"""Ingestion pipeline for benchwarden.

This module runs one benchmark run through the whole cycle: load the
history, evaluate the run against it, append it, and persist the result
with optimistic concurrency, retrying when another writer got there first.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from benchwarden.core.exceptions import ConflictError, DuplicateCommitError, NotificationError
from benchwarden.core.gating import EmitConfig, ReportEmitter
from benchwarden.regression.detector import RegressionDetector

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from benchwarden.core.config import Settings
    from benchwarden.core.gating import EmitOutcome
    from benchwarden.core.types import MeasurementBatch
    from benchwarden.history.store import AppendResult, HistoryStore
    from benchwarden.notify import NotificationSink
    from benchwarden.regression.models import RegressionConfig, RegressionReport

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Retry budget for write conflicts.

    The n-th retry waits ``base_delay * 2**n`` seconds, capped at ``max_delay``.

    Attributes:
        max_attempts: Total attempts of the load/append/persist cycle.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound of the delay, in seconds.
        sleep: Coroutine used to wait (replaceable in tests).
    """

    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 8.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {self.max_attempts}"
            raise ValueError(msg)

    def delay_for(self, retry: int) -> float:
        """Delay before the given retry (0 for the first one)."""
        return float(min(self.base_delay * 2**retry, self.max_delay))

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        """Build the policy configured through environment settings."""
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay_seconds,
            max_delay=settings.max_delay_seconds,
        )


@dataclass
class PipelineResult:
    """Result of ingesting one run.

    Attributes:
        report: Verdicts of the run against the history it was appended to.
        outcome: CI outcome of the report.
        appended: What was appended, or None if the commit was already recorded.
        attempts: Number of load/append/persist cycles used.
        revision: Revision token of the stored document afterwards.
        notification_error: Message of a failed notification, if any.
    """

    report: RegressionReport
    outcome: EmitOutcome
    appended: AppendResult | None
    attempts: int
    revision: str | None = None
    notification_error: str | None = None

    @property
    def duplicate(self) -> bool:
        """Whether the run was skipped because its commit was already recorded."""
        return self.appended is None


async def run_pipeline(
    batch: MeasurementBatch,
    store: HistoryStore,
    regression_config: RegressionConfig | None = None,
    emit_config: EmitConfig | None = None,
    retry: RetryPolicy | None = None,
    sink: NotificationSink | None = None,
) -> PipelineResult:
    """Ingest one run into the history and decide its CI outcome.

    Every attempt reloads the document, so the report always reflects the
    history the run was actually appended to.

    Args:
        batch: The parsed run.
        store: History store to update.
        regression_config: Detection configuration.
        emit_config: Gating configuration.
        retry: Conflict retry policy. Defaults to RetryPolicy().
        sink: Optional receiver of the outcome.

    Returns:
        PipelineResult with the report, the outcome and what was appended.

    Raises:
        ConflictError: If every attempt lost a write race.
        OutOfOrderError: If the run is older than the latest recorded one.
        StorageError: If the history cannot be read or written.

    Example:
        >>> store = HistoryStore(FileStore("dev/bench/data.js"))
        >>> result = await run_pipeline(batch, store, RegressionConfig(), EmitConfig())
        >>> raise SystemExit(result.outcome.exit_code)
    """
    retry = retry or RetryPolicy()
    detector = RegressionDetector(regression_config)
    emitter = ReportEmitter(emit_config or EmitConfig())

    attempt = 0
    while True:
        attempt += 1
        doc, token = await store.load()
        report = detector.evaluate(batch, doc)

        try:
            appended: AppendResult | None = store.append(doc, batch)
        except DuplicateCommitError as e:
            logger.info(f"{e}; nothing to record")
            appended = None
            revision = token
            break

        try:
            revision = await emitter.publish(store, doc, token)
            break
        except ConflictError as e:
            if attempt >= retry.max_attempts:
                logger.error(f"Giving up after {attempt} conflicting attempts")
                msg = f"History kept changing during {attempt} attempts: {e}"
                raise ConflictError(e.expected, e.actual, message=msg) from e
            delay = retry.delay_for(attempt - 1)
            logger.warning(f"Write conflict on attempt {attempt}/{retry.max_attempts}, retrying in {delay:.2f}s")
            await retry.sleep(delay)

    outcome = emitter.emit(report)
    result = PipelineResult(
        report=report,
        outcome=outcome,
        appended=appended,
        attempts=attempt,
        revision=revision,
    )

    try:
        await emitter.notify(sink, outcome, report)
    except NotificationError as e:
        logger.warning(f"Notification failed: {e}")
        result.notification_error = str(e)

    return result
