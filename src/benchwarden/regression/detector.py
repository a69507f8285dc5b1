"""Regression detector for benchmark runs.

This module provides the RegressionDetector class, which compares every
measurement of a new run with the trailing window of its history, and
the strategies it uses to score the difference.
"""

from __future__ import annotations

import logging
import math
import statistics
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from benchwarden.regression.models import (
    BaselineStats,
    Direction,
    MeasurementVerdict,
    Method,
    RegressionConfig,
    RegressionReport,
    Verdict,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchwarden.core.types import Measurement, MeasurementBatch
    from benchwarden.history.models import HistoryDocument, SeriesPoint

logger = logging.getLogger(__name__)


@runtime_checkable
class RegressionStrategy(Protocol):
    """Protocol for the statistical test comparing a value with its baseline.

    A strategy turns a value and its baseline into a score (``delta``),
    then classifies that score. Returning None from ``score`` means no
    comparison is possible and the measurement is reported as ``ok``.

    Example:
        >>> class AbsoluteStrategy:
        ...     name = "absolute"
        ...     def score(self, value, baseline, direction, config):
        ...         return value - baseline.mean
        ...     def classify(self, delta, direction, config):
        ...         return Verdict.OK
        >>> detector = RegressionDetector(strategy=AbsoluteStrategy())
    """

    name: str

    def score(
        self,
        value: float,
        baseline: BaselineStats,
        direction: Direction,
        config: RegressionConfig,
    ) -> float | None:
        """Score ``value`` against ``baseline``."""
        ...

    def classify(self, delta: float, direction: Direction, config: RegressionConfig) -> Verdict:
        """Map a score to a verdict."""
        ...


class ZScoreStrategy:
    """Distance from the baseline mean in baseline deviations.

    ``delta = (value - mean) / max(stddev, epsilon)``. For a lower-is-better
    benchmark a delta above the threshold is a regression and one below
    minus the threshold an improvement; higher-is-better mirrors this.
    """

    name = "zscore"

    def score(
        self,
        value: float,
        baseline: BaselineStats,
        direction: Direction,
        config: RegressionConfig,
    ) -> float | None:
        return (value - baseline.mean) / max(baseline.stddev, config.epsilon)

    def classify(self, delta: float, direction: Direction, config: RegressionConfig) -> Verdict:
        worse = delta if direction == Direction.LOWER else -delta
        if worse > config.threshold:
            return Verdict.REGRESSED
        if worse < -config.threshold:
            return Verdict.IMPROVED
        return Verdict.OK


class RatioStrategy:
    """Ratio of the new value to the baseline mean.

    The ratio is oriented so that a larger number is always worse:
    ``value / mean`` for lower-is-better and ``mean / value`` for
    higher-is-better. A ratio above the threshold (2.0 means 200%) is a
    regression, one below ``1 / threshold`` an improvement.
    """

    name = "ratio"

    def score(
        self,
        value: float,
        baseline: BaselineStats,
        direction: Direction,
        config: RegressionConfig,
    ) -> float | None:
        numerator, denominator = (value, baseline.mean) if direction == Direction.LOWER else (baseline.mean, value)
        if denominator == 0:
            return None
        return numerator / denominator

    def classify(self, delta: float, direction: Direction, config: RegressionConfig) -> Verdict:
        if delta > config.threshold:
            return Verdict.REGRESSED
        if delta < 1 / config.threshold:
            return Verdict.IMPROVED
        return Verdict.OK


STRATEGIES: dict[Method, type[ZScoreStrategy] | type[RatioStrategy]] = {
    Method.ZSCORE: ZScoreStrategy,
    Method.RATIO: RatioStrategy,
}


def baseline_stats(points: Sequence[SeriesPoint], window_size: int) -> BaselineStats | None:
    """Compute the statistics of the trailing window of a series.

    Args:
        points: Series points, oldest first.
        window_size: Number of most recent points to use.

    Returns:
        BaselineStats, or None if there are no points or a value is not finite.
    """
    window = list(points)[-window_size:]
    if not window:
        return None

    values = tuple(float(p.value) for p in window)
    if not all(math.isfinite(v) for v in values):
        return None

    if len(values) >= 2:
        stddev = statistics.stdev(values)
        source = "sample"
    else:
        stddev = float(window[0].error_range)
        source = "reported"

    return BaselineStats(
        mean=statistics.fmean(values),
        stddev=stddev,
        sample_size=len(values),
        values=values,
        stddev_source=source,
    )


class RegressionDetector:
    """Detect regressions of a run against the accumulated history.

    Evaluation is a pure function of the batch, the document and the
    configuration: it neither mutates the document nor raises for
    regressions, which are reported as verdicts.

    Attributes:
        config: Detection configuration.
        strategy: Statistical test in use.

    Example:
        >>> detector = RegressionDetector(RegressionConfig(threshold=3.0))
        >>> report = detector.evaluate(batch, doc)
        >>> for verdict in report.regressed:
        ...     print(verdict.name, verdict.delta)
    """

    def __init__(
        self,
        config: RegressionConfig | None = None,
        strategy: RegressionStrategy | None = None,
    ) -> None:
        """Initialize detector.

        Args:
            config: Detection configuration. Defaults to RegressionConfig().
            strategy: Custom strategy. Defaults to the one named by ``config.method``.
        """
        self.config = config or RegressionConfig()
        self.strategy: RegressionStrategy = strategy or STRATEGIES[self.config.method]()

    def evaluate(self, batch: MeasurementBatch, doc: HistoryDocument) -> RegressionReport:
        """Evaluate every measurement of a run.

        Args:
            batch: The new run.
            doc: History to compare against (the run need not be appended yet).

        Returns:
            RegressionReport with one verdict per measurement, in batch order.
        """
        verdicts = [self._evaluate_one(batch, m, doc) for m in batch.measurements]
        report = RegressionReport(
            suite=batch.suite,
            tool=batch.tool,
            commit_id=batch.commit.id,
            method=self.config.method,
            threshold=self.config.threshold,
            verdicts=verdicts,
        )
        logger.debug(f"Evaluated {len(verdicts)} measurements of '{batch.suite}': {report.counts()}")
        return report

    def _evaluate_one(self, batch: MeasurementBatch, measurement: Measurement, doc: HistoryDocument) -> MeasurementVerdict:
        direction = self.config.direction_for(measurement.name)
        value = measurement.value
        series = doc.series(batch.suite, measurement.name).excluding_commit(batch.commit.id)

        latest = series.latest
        if latest is None:
            return MeasurementVerdict(
                name=measurement.name,
                verdict=Verdict.NEW_BENCHMARK,
                value=value,
                unit=measurement.unit,
                direction=direction,
            )

        if latest.unit != measurement.unit:
            return MeasurementVerdict(
                name=measurement.name,
                verdict=Verdict.UNIT_CHANGED,
                value=value,
                unit=measurement.unit,
                direction=direction,
                previous_unit=latest.unit,
            )

        same_unit = [p for p in series.points if p.unit == measurement.unit]
        baseline = baseline_stats(same_unit, self.config.window_size)
        delta = None
        if baseline is not None and math.isfinite(baseline.stddev):
            delta = self.strategy.score(float(value), baseline, direction, self.config)
        if delta is None or not math.isfinite(delta):
            logger.debug(f"No comparable baseline for '{measurement.name}', reporting ok")
            return MeasurementVerdict(
                name=measurement.name,
                verdict=Verdict.OK,
                value=value,
                unit=measurement.unit,
                direction=direction,
                baseline=baseline,
            )

        return MeasurementVerdict(
            name=measurement.name,
            verdict=self.strategy.classify(delta, direction, self.config),
            value=value,
            unit=measurement.unit,
            direction=direction,
            delta=delta,
            baseline=baseline,
        )


def evaluate(
    batch: MeasurementBatch,
    doc: HistoryDocument,
    config: RegressionConfig | None = None,
) -> RegressionReport:
    """Evaluate a run with the strategy named by ``config.method``.

    Example:
        >>> report = evaluate(batch, doc, RegressionConfig(window_size=10))
    """
    return RegressionDetector(config).evaluate(batch, doc)
