"""Tests for CI gating module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

import pytest

from benchwarden.core.exceptions import ConfigurationError
from benchwarden.core.gating import EXIT_CODES, EmitConfig, EmitOutcome, GatingResult, ReportEmitter
from benchwarden.history import HistoryStore, MemoryStore
from benchwarden.regression import MeasurementVerdict, Method, RegressionReport, Verdict


def make_report(**verdicts: Verdict) -> RegressionReport:
    """Helper to build a report with one verdict per keyword."""
    return RegressionReport(
        suite="Rust Benchmark",
        tool="cargo",
        commit_id="66e74789a86f81adaa6c02e9124b4a4e1a1e05c8",
        method=Method.ZSCORE,
        threshold=2.0,
        verdicts=[
            MeasurementVerdict(
                name=name,
                verdict=verdict,
                value=9000,
                unit="ns/iter" if verdict != Verdict.UNIT_CHANGED else "us/iter",
                previous_unit="ns/iter" if verdict == Verdict.UNIT_CHANGED else None,
            )
            for name, verdict in verdicts.items()
        ],
    )


class TestEmitConfig:
    """Tests for EmitConfig."""

    def test_defaults_warn_only(self) -> None:
        """By default no regression fails the build."""
        config = EmitConfig()

        assert config.fail_on is None
        assert config.fail_on_any_regression is False
        assert config.fails("anything") is False

    def test_fail_on_any(self) -> None:
        """fail_on_any_regression fails every regression."""
        assert EmitConfig(fail_on_any_regression=True).fails("anything") is True

    def test_fail_on_list_wins(self) -> None:
        """An explicit list restricts failures to the listed benchmarks."""
        config = EmitConfig(fail_on=["a"], fail_on_any_regression=True)

        assert config.fails("a") is True
        assert config.fails("b") is False

    def test_yaml_round_trip(self, tmp_path: Path) -> None:
        """Saves and loads the emit section."""
        config_file = tmp_path / "config.yaml"
        config = EmitConfig(fail_on=["Node set"])

        config.to_yaml(config_file)

        assert EmitConfig.from_yaml(config_file) == config

    def test_from_yaml_empty_file(self, tmp_path: Path) -> None:
        """An empty file yields defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert EmitConfig.from_yaml(config_file) == EmitConfig()

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="not found"):
            EmitConfig.from_yaml(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("content", ["emit: {fail_on: [a\n", "- a\n- b\n", "emit: yes\n"])
    def test_from_yaml_malformed(self, tmp_path: Path, content: str) -> None:
        """Malformed YAML raises ConfigurationError."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(content)

        with pytest.raises(ConfigurationError):
            EmitConfig.from_yaml(config_file)


class TestReportEmitter:
    """Tests for ReportEmitter.emit."""

    def test_all_ok_passes(self) -> None:
        """No regression passes with exit code 0."""
        outcome = ReportEmitter().emit(make_report(a=Verdict.OK, b=Verdict.IMPROVED))

        assert outcome.status == GatingResult.PASS
        assert outcome.exit_code == 0
        assert outcome.summary == "No performance regression detected."

    def test_new_benchmarks_ignored(self) -> None:
        """New benchmarks never affect the outcome."""
        outcome = ReportEmitter().emit(make_report(a=Verdict.NEW_BENCHMARK))

        assert outcome.status == GatingResult.PASS
        assert outcome.names == []

    def test_regression_warns_by_default(self) -> None:
        """Without fail configuration a regression only warns."""
        outcome = ReportEmitter().emit(make_report(a=Verdict.REGRESSED))

        assert outcome.status == GatingResult.WARN
        assert outcome.exit_code == 0
        assert outcome.warned == ["a"]
        assert "WARNING" in outcome.summary

    def test_fail_on_any_regression(self) -> None:
        """A configured regression fails with exit code 1."""
        emitter = ReportEmitter(EmitConfig(fail_on_any_regression=True))

        outcome = emitter.emit(make_report(a=Verdict.REGRESSED, b=Verdict.OK))

        assert outcome.status == GatingResult.FAIL
        assert outcome.exit_code == 1
        assert outcome.failed == ["a"]
        assert outcome.names == ["a"]
        assert outcome.summary == "Benchmark gating FAILED: regressions in a"

    def test_fail_on_subset(self) -> None:
        """Unlisted regressions warn while listed ones fail."""
        emitter = ReportEmitter(EmitConfig(fail_on=["a"]))

        outcome = emitter.emit(make_report(a=Verdict.REGRESSED, b=Verdict.REGRESSED))

        assert outcome.status == GatingResult.FAIL
        assert outcome.failed == ["a"]
        assert outcome.warned == ["b"]

    def test_unlisted_regression_warns(self) -> None:
        """A regression outside fail_on does not fail."""
        emitter = ReportEmitter(EmitConfig(fail_on=["a"]))

        outcome = emitter.emit(make_report(b=Verdict.REGRESSED))

        assert outcome.status == GatingResult.WARN

    def test_unit_change_warns(self) -> None:
        """A unit change warns even when regressions fail."""
        emitter = ReportEmitter(EmitConfig(fail_on_any_regression=True))

        outcome = emitter.emit(make_report(a=Verdict.UNIT_CHANGED))

        assert outcome.status == GatingResult.WARN
        assert outcome.warned == ["a"]

    def test_config_override_per_call(self) -> None:
        """A config passed to emit replaces the emitter's."""
        emitter = ReportEmitter()

        outcome = emitter.emit(make_report(a=Verdict.REGRESSED), EmitConfig(fail_on_any_regression=True))

        assert outcome.status == GatingResult.FAIL

    def test_exit_codes(self) -> None:
        """Only failures exit non-zero."""
        assert EXIT_CODES == {GatingResult.PASS: 0, GatingResult.WARN: 0, GatingResult.FAIL: 1}

    def test_outcome_to_dict(self) -> None:
        """Outcome serializes for JSON output."""
        outcome = EmitOutcome(status=GatingResult.WARN, exit_code=0, warned=["a"], summary="s")

        assert outcome.to_dict() == {
            "status": "warn",
            "exit_code": 0,
            "failed": [],
            "warned": ["a"],
            "summary": "s",
        }


class RecordingSink:
    """Sink collecting what it is sent."""

    def __init__(self) -> None:
        self.calls: list[tuple[EmitOutcome, str]] = []

    async def notify(self, outcome: EmitOutcome, summary: str) -> None:
        self.calls.append((outcome, summary))


class TestPublishNotify:
    """Tests for ReportEmitter.publish and ReportEmitter.notify."""

    @pytest.mark.asyncio
    async def test_publish_persists(self) -> None:
        """publish writes the document through the store."""
        backend = MemoryStore()
        store = HistoryStore(backend)
        doc, token = await store.load()

        revision = await ReportEmitter().publish(store, doc, token)

        assert backend.writes == 1
        assert revision == (await backend.read())[1]

    @pytest.mark.asyncio
    async def test_notify_sends_markdown(self) -> None:
        """The sink receives the outcome and a Markdown summary."""
        sink = RecordingSink()
        emitter = ReportEmitter()
        report = make_report(a=Verdict.REGRESSED)
        outcome = emitter.emit(report)

        await emitter.notify(sink, outcome, report)

        assert len(sink.calls) == 1
        sent_outcome, summary = sink.calls[0]
        assert sent_outcome == outcome
        assert summary.startswith("### Benchmark report: Rust Benchmark @ `66e7478`")

    @pytest.mark.asyncio
    async def test_notify_without_sink(self) -> None:
        """No sink means nothing happens."""
        report = make_report(a=Verdict.OK)
        emitter = ReportEmitter()

        await emitter.notify(None, emitter.emit(report), report)
