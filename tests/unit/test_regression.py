"""Unit tests for the regression detection module."""

from __future__ import annotations

import math
import statistics
from typing import TYPE_CHECKING

import pytest

from benchwarden.core.exceptions import ConfigurationError
from benchwarden.core.types import Commit, Measurement, MeasurementBatch
from benchwarden.history.models import BenchmarkEntry, HistoryDocument
from benchwarden.regression import (
    BaselineStats,
    Direction,
    Method,
    RatioStrategy,
    RegressionConfig,
    RegressionDetector,
    RegressionStrategy,
    Verdict,
    ZScoreStrategy,
    evaluate,
)

if TYPE_CHECKING:
    from pathlib import Path

SUITE = "Rust Benchmark"
BASELINE = [7000, 7100, 6900, 7050, 6950]

# ============================================================================
# Helpers
# ============================================================================


def make_batch(
    values: dict[str, float],
    commit_id: str = "new",
    date: int = 10_000,
    unit: str = "ns/iter",
    error_range: float = 0.0,
) -> MeasurementBatch:
    """Helper to create a batch for the suite."""
    return MeasurementBatch(
        tool="cargo",
        suite=SUITE,
        commit=Commit(id=commit_id),
        date=date,
        measurements=tuple(
            Measurement(name=name, value=value, error_range=error_range, unit=unit) for name, value in values.items()
        ),
    )


def make_history(
    values: list[float],
    name: str = "Node set",
    unit: str = "ns/iter",
    error_range: float = 0.0,
) -> HistoryDocument:
    """Helper to create a document holding one series, one entry per value."""
    doc = HistoryDocument.empty("https://github.com/wnfs-wg/rs-wnfs")
    doc.entries[SUITE] = [
        BenchmarkEntry.from_batch(
            make_batch({name: value}, commit_id=f"c{i}", date=1000 + i, unit=unit, error_range=error_range)
        )
        for i, value in enumerate(values)
    ]
    return doc


@pytest.fixture
def history() -> HistoryDocument:
    """The five-run baseline history."""
    return make_history(BASELINE)


# ============================================================================
# Z-score Tests
# ============================================================================


class TestZScore:
    """Tests for the default z-score detection."""

    def test_regression(self, history: HistoryDocument) -> None:
        """9000 against a ~7000 ± 79 baseline regresses."""
        report = evaluate(make_batch({"Node set": 9000}), history)
        verdict = report.verdicts[0]

        assert verdict.verdict == Verdict.REGRESSED
        assert verdict.delta == pytest.approx(2000 / statistics.stdev(BASELINE))
        assert verdict.baseline is not None
        assert verdict.baseline.mean == pytest.approx(7000)
        assert verdict.baseline.stddev == pytest.approx(statistics.stdev(BASELINE))
        assert verdict.baseline.sample_size == 5

    def test_improvement(self, history: HistoryDocument) -> None:
        """6200 improves on the baseline."""
        verdict = evaluate(make_batch({"Node set": 6200}), history).verdicts[0]

        assert verdict.verdict == Verdict.IMPROVED
        assert verdict.delta == pytest.approx(-800 / statistics.stdev(BASELINE))

    def test_within_noise(self, history: HistoryDocument) -> None:
        """7100 is within two deviations."""
        verdict = evaluate(make_batch({"Node set": 7100}), history).verdicts[0]

        assert verdict.verdict == Verdict.OK
        assert verdict.delta == pytest.approx(100 / statistics.stdev(BASELINE))

    def test_threshold_is_configurable(self, history: HistoryDocument) -> None:
        """A looser threshold accepts a larger move."""
        config = RegressionConfig(threshold=30.0)

        assert evaluate(make_batch({"Node set": 9000}), history, config).verdicts[0].verdict == Verdict.OK

    def test_window_limits_baseline(self) -> None:
        """Only the last window_size points form the baseline."""
        doc = make_history([100_000, *BASELINE])

        verdict = evaluate(make_batch({"Node set": 7100}), doc).verdicts[0]

        assert verdict.verdict == Verdict.OK
        assert verdict.baseline is not None
        assert verdict.baseline.values == tuple(float(v) for v in BASELINE)

    def test_single_point_uses_reported_range(self) -> None:
        """With one point, its own error range stands in for the deviation."""
        doc = make_history([7000], error_range=100)

        verdict = evaluate(make_batch({"Node set": 7300}), doc).verdicts[0]

        assert verdict.verdict == Verdict.REGRESSED
        assert verdict.delta == pytest.approx(3.0)
        assert verdict.baseline is not None
        assert verdict.baseline.stddev_source == "reported"

    def test_flat_series_uses_epsilon(self) -> None:
        """A zero deviation does not divide by zero."""
        doc = make_history([500, 500, 500])

        same = evaluate(make_batch({"Node set": 500}), doc).verdicts[0]
        slower = evaluate(make_batch({"Node set": 501}), doc).verdicts[0]

        assert same.verdict == Verdict.OK
        assert same.delta == 0.0
        assert slower.verdict == Verdict.REGRESSED

    def test_higher_is_better_mirrors(self) -> None:
        """For throughput, a drop regresses and a rise improves."""
        doc = make_history(BASELINE, name="throughput", unit="req/s")
        config = RegressionConfig(directions={"throughput": Direction.HIGHER})

        dropped = evaluate(make_batch({"throughput": 6200}, unit="req/s"), doc, config).verdicts[0]
        rose = evaluate(make_batch({"throughput": 9000}, unit="req/s"), doc, config).verdicts[0]

        assert dropped.verdict == Verdict.REGRESSED
        assert dropped.direction == Direction.HIGHER
        assert rose.verdict == Verdict.IMPROVED


# ============================================================================
# Classification Precedence Tests
# ============================================================================


class TestPrecedence:
    """Tests for new benchmarks, unit changes and degenerate baselines."""

    def test_new_benchmark(self, history: HistoryDocument) -> None:
        """A name never recorded is a new benchmark."""
        verdict = evaluate(make_batch({"Node get": 123}), history).verdicts[0]

        assert verdict.verdict == Verdict.NEW_BENCHMARK
        assert verdict.delta is None
        assert verdict.baseline is None

    def test_empty_history(self) -> None:
        """Everything is new in an empty document."""
        report = evaluate(make_batch({"a": 1, "b": 2}), HistoryDocument.empty())

        assert [v.verdict for v in report.verdicts] == [Verdict.NEW_BENCHMARK, Verdict.NEW_BENCHMARK]

    def test_unit_change_takes_precedence(self, history: HistoryDocument) -> None:
        """A different unit is reported regardless of the value."""
        verdict = evaluate(make_batch({"Node set": 900_000}, unit="us/iter"), history).verdicts[0]

        assert verdict.verdict == Verdict.UNIT_CHANGED
        assert verdict.previous_unit == "ns/iter"
        assert verdict.delta is None

    def test_same_commit_excluded(self, history: HistoryDocument) -> None:
        """Re-ingesting a commit does not compare it with itself."""
        history.entries[SUITE].append(
            BenchmarkEntry.from_batch(make_batch({"Node set": 9000}, commit_id="again", date=5000))
        )

        verdict = evaluate(make_batch({"Node set": 9000}, commit_id="again"), history).verdicts[0]

        assert verdict.verdict == Verdict.REGRESSED
        assert verdict.baseline is not None
        assert 9000.0 not in verdict.baseline.values

    def test_non_finite_baseline_is_ok(self) -> None:
        """A NaN in the baseline yields ok without a delta."""
        doc = make_history([7000, 7100])
        doc.entries[SUITE][0].benches[0].value = math.nan

        verdict = evaluate(make_batch({"Node set": 9000}), doc).verdicts[0]

        assert verdict.verdict == Verdict.OK
        assert verdict.delta is None

    def test_evaluation_is_pure(self, history: HistoryDocument) -> None:
        """The document is not modified."""
        before = history.to_dict()

        evaluate(make_batch({"Node set": 9000, "Node get": 1}), history)

        assert history.to_dict() == before


# ============================================================================
# Ratio Strategy Tests
# ============================================================================


class TestRatio:
    """Tests for the ratio strategy."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(15000, Verdict.REGRESSED), (3000, Verdict.IMPROVED), (8000, Verdict.OK)],
    )
    def test_lower_is_better(self, history: HistoryDocument, value: float, expected: Verdict) -> None:
        """value / mean above 2 regresses, below 1/2 improves."""
        config = RegressionConfig(method=Method.RATIO)

        verdict = evaluate(make_batch({"Node set": value}), history, config).verdicts[0]

        assert verdict.verdict == expected
        assert verdict.delta == pytest.approx(value / 7000)

    def test_higher_is_better(self) -> None:
        """For higher-is-better the ratio is mean / value."""
        doc = make_history([100, 100], name="ops", unit="ops/s")
        config = RegressionConfig(method=Method.RATIO, default_direction=Direction.HIGHER)

        verdict = evaluate(make_batch({"ops": 40}, unit="ops/s"), doc, config).verdicts[0]

        assert verdict.verdict == Verdict.REGRESSED
        assert verdict.delta == pytest.approx(2.5)

    def test_zero_mean_is_ok(self) -> None:
        """A zero baseline cannot be compared."""
        doc = make_history([0, 0])
        config = RegressionConfig(method=Method.RATIO)

        verdict = evaluate(make_batch({"Node set": 5}), doc, config).verdicts[0]

        assert verdict.verdict == Verdict.OK
        assert verdict.delta is None


# ============================================================================
# Detector and Report Tests
# ============================================================================


class TestDetector:
    """Tests for RegressionDetector and RegressionReport."""

    def test_strategy_follows_method(self) -> None:
        """The configured method selects the strategy."""
        assert isinstance(RegressionDetector().strategy, ZScoreStrategy)
        assert isinstance(RegressionDetector(RegressionConfig(method=Method.RATIO)).strategy, RatioStrategy)

    def test_custom_strategy(self, history: HistoryDocument) -> None:
        """Any RegressionStrategy can be injected."""

        class AlwaysRegressed:
            name = "always"

            def score(
                self, value: float, baseline: BaselineStats, direction: Direction, config: RegressionConfig
            ) -> float | None:
                return value - baseline.mean

            def classify(self, delta: float, direction: Direction, config: RegressionConfig) -> Verdict:
                return Verdict.REGRESSED

        strategy = AlwaysRegressed()
        assert isinstance(strategy, RegressionStrategy)

        report = RegressionDetector(strategy=strategy).evaluate(make_batch({"Node set": 7000}), history)

        assert report.verdicts[0].verdict == Verdict.REGRESSED
        assert report.verdicts[0].delta == pytest.approx(0.0)

    def test_report_helpers(self, history: HistoryDocument) -> None:
        """Verdicts keep batch order and are grouped by kind."""
        report = evaluate(make_batch({"Node set": 9000, "Node get": 1}), history)

        assert report.suite == SUITE
        assert report.tool == "cargo"
        assert report.commit_id == "new"
        assert report.has_regressions
        assert [v.name for v in report.regressed] == ["Node set"]
        assert [v.name for v in report.new_benchmarks] == ["Node get"]
        assert report.get("Node get") is not None
        assert report.get("missing") is None
        assert report.counts()["regressed"] == 1
        assert report.counts()["new-benchmark"] == 1

    def test_report_to_dict(self, history: HistoryDocument) -> None:
        """The dictionary form carries verdicts and baselines."""
        data = evaluate(make_batch({"Node set": 9000}), history).to_dict()

        assert data["method"] == "zscore"
        assert data["verdicts"][0]["verdict"] == "regressed"
        assert data["verdicts"][0]["baseline"]["sample_size"] == 5


# ============================================================================
# Configuration Tests
# ============================================================================


class TestRegressionConfig:
    """Tests for RegressionConfig."""

    def test_defaults(self) -> None:
        """Defaults are a 2.0 threshold over five runs."""
        config = RegressionConfig()

        assert config.threshold == 2.0
        assert config.window_size == 5
        assert config.method == Method.ZSCORE
        assert config.direction_for("anything") == Direction.LOWER

    def test_with_overrides(self) -> None:
        """None values are ignored and directions merged."""
        config = RegressionConfig(directions={"a": Direction.HIGHER})

        updated = config.with_overrides(threshold=3.0, window_size=None, directions={"b": Direction.HIGHER})

        assert updated.threshold == 3.0
        assert updated.window_size == 5
        assert updated.direction_for("a") == Direction.HIGHER
        assert updated.direction_for("b") == Direction.HIGHER

    def test_invalid_values(self) -> None:
        """Thresholds and windows must be positive."""
        with pytest.raises(ValueError):
            RegressionConfig(threshold=0)
        with pytest.raises(ValueError):
            RegressionConfig(window_size=0)

    def test_yaml_round_trip(self, tmp_path: Path) -> None:
        """Configuration survives a YAML round trip."""
        path = tmp_path / "benchwarden.yaml"
        config = RegressionConfig(threshold=3.0, method=Method.RATIO, directions={"ops": Direction.HIGHER})

        config.to_yaml(path)

        assert RegressionConfig.from_yaml(path) == config

    def test_from_yaml_section(self, tmp_path: Path) -> None:
        """Only the regression section is read."""
        path = tmp_path / "benchwarden.yaml"
        path.write_text("emit:\n  fail_on_any_regression: true\nregression:\n  window_size: 10\n")

        config = RegressionConfig.from_yaml(path)

        assert config.window_size == 10
        assert config.threshold == 2.0

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            RegressionConfig.from_yaml(tmp_path / "missing.yaml")

    @pytest.mark.parametrize("content", ["regression: [unclosed\n", "- a\n- b\n"])
    def test_from_yaml_malformed(self, tmp_path: Path, content: str) -> None:
        """Invalid YAML or a non-mapping document raises ConfigurationError."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(content)

        with pytest.raises(ConfigurationError):
            RegressionConfig.from_yaml(config_file)
