"""Regression detection for benchwarden.

This module compares a new benchmark run with the trailing history of
each measurement and reports a verdict per measurement.

Example:
    >>> from benchwarden.regression import RegressionConfig, RegressionDetector
    >>> detector = RegressionDetector(RegressionConfig(threshold=2.0, window_size=5))
    >>> report = detector.evaluate(batch, doc)
    >>> report.has_regressions
    False
"""

from __future__ import annotations

from benchwarden.regression.detector import (
    RatioStrategy,
    RegressionDetector,
    RegressionStrategy,
    ZScoreStrategy,
    baseline_stats,
    evaluate,
)
from benchwarden.regression.models import (
    BaselineStats,
    Direction,
    MeasurementVerdict,
    Method,
    RegressionConfig,
    RegressionReport,
    Verdict,
)

__all__ = [
    "BaselineStats",
    "Direction",
    "MeasurementVerdict",
    "Method",
    "RatioStrategy",
    "RegressionConfig",
    "RegressionDetector",
    "RegressionReport",
    "RegressionStrategy",
    "Verdict",
    "ZScoreStrategy",
    "baseline_stats",
    "evaluate",
]
