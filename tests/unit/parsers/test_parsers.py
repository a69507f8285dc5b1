"""Unit tests for benchmark output parsers."""

from __future__ import annotations

import json
import math

import pytest

from benchwarden.core.exceptions import (
    MalformedOutputError,
    NonFiniteValueError,
    ParseError,
    UnknownToolError,
)
from benchwarden.core.types import Commit
from benchwarden.parsers import (
    CargoParser,
    CustomParser,
    GoogleBenchmarkParser,
    GoParser,
    ParserProtocol,
    PytestBenchmarkParser,
    available_tools,
    get_parser,
    parse,
)

CARGO_OUTPUT = """\
running 3 tests
test Node set ... bench:     210,840 ns/iter (+/- 802)
test Namefilter encode ... bench:         143 ns/iter (+/- 0)
test With throughput/Node load and get ... bench:     152,115 ns/iter (+/- 307)
test ignored_case ... ignored

test result: ok. 0 passed; 0 failed; 1 ignored; 3 measured; 0 filtered out
"""

GO_OUTPUT = """\
goos: linux
goarch: amd64
pkg: example.com/fib
BenchmarkFib10-8   \t 3000000\t       410 ns/op\t       0 B/op\t       0 allocs/op
BenchmarkFib20     \t   30000\t     40537 ns/op
PASS
ok  \texample.com/fib\t3.138s
"""

PYTEST_OUTPUT = {
    "machine_info": {"node": "ci"},
    "benchmarks": [
        {
            "name": "test_sort",
            "fullname": "tests/test_sort.py::test_sort",
            "stats": {"min": 0.0018, "max": 0.0023, "mean": 0.002, "stddev": 0.0001, "rounds": 100, "ops": 500.0},
        },
        {
            "name": "test_copy",
            "fullname": "tests/test_copy.py::test_copy",
            "stats": {"mean": 0.004, "stddev": 0.0, "rounds": 10},
        },
    ],
}

GOOGLE_OUTPUT = {
    "context": {"date": "2024-01-15T10:30:00+00:00", "num_cpus": 8},
    "benchmarks": [
        {
            "name": "BM_Sort/1024",
            "run_name": "BM_Sort/1024",
            "run_type": "iteration",
            "iterations": 5000,
            "real_time": 120.5,
            "cpu_time": 119.0,
            "time_unit": "ns",
        },
        {"name": "BM_Copy", "run_name": "BM_Copy", "run_type": "iteration", "real_time": 48.0, "time_unit": "us"},
        {"name": "BM_Copy", "run_name": "BM_Copy", "run_type": "iteration", "real_time": 52.0, "time_unit": "us"},
        {
            "name": "BM_Copy_mean",
            "run_name": "BM_Copy",
            "run_type": "aggregate",
            "aggregate_name": "mean",
            "iterations": 2,
            "real_time": 50.0,
            "cpu_time": 49.0,
            "time_unit": "us",
        },
        {
            "name": "BM_Copy_stddev",
            "run_name": "BM_Copy",
            "run_type": "aggregate",
            "aggregate_name": "stddev",
            "real_time": 2.5,
            "time_unit": "us",
        },
    ],
}

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def commit() -> Commit:
    """Commit the parsed runs belong to."""
    return Commit(id="a1b2c3d4e5f6", message="Speed up node set")


# ============================================================================
# Registry Tests
# ============================================================================


class TestRegistry:
    """Tests for the parser registry."""

    def test_builtin_tools_registered(self) -> None:
        """All built-in tools are available."""
        assert set(available_tools()) >= {
            "cargo",
            "go",
            "pytest",
            "googlecpp",
            "customSmallerIsBetter",
            "customBiggerIsBetter",
        }

    def test_parsers_implement_protocol(self) -> None:
        """Every registered parser satisfies ParserProtocol."""
        for tool in available_tools():
            assert isinstance(get_parser(tool), ParserProtocol)

    def test_unknown_tool(self, commit: Commit) -> None:
        """Unknown tools raise UnknownToolError, a ParseError."""
        with pytest.raises(UnknownToolError) as exc_info:
            parse("jmh", b"", commit, date=1)

        assert isinstance(exc_info.value, ParseError)
        assert "cargo" in str(exc_info.value)

    def test_natural_directions(self) -> None:
        """Rates are bigger-is-better, timings smaller-is-better."""
        assert get_parser("pytest").bigger_is_better is True
        assert get_parser("customBiggerIsBetter").bigger_is_better is True
        assert get_parser("cargo").bigger_is_better is False
        assert get_parser("customSmallerIsBetter").bigger_is_better is False


# ============================================================================
# Adapter Tests
# ============================================================================


class TestCargoParser:
    """Tests for cargo bench output."""

    def test_parses_bench_lines(self) -> None:
        """Names, comma separated values, units and ranges are read."""
        measurements = CargoParser().parse_records(CARGO_OUTPUT)

        assert [m.name for m in measurements] == [
            "Node set",
            "Namefilter encode",
            "With throughput/Node load and get",
        ]
        node_set = measurements[0]
        assert node_set.value == 210840
        assert isinstance(node_set.value, int)
        assert node_set.unit == "ns/iter"
        assert node_set.error_range == 802.0

    def test_line_without_range(self) -> None:
        """The (+/- n) suffix is optional."""
        measurements = CargoParser().parse_records("test fast ... bench: 12 ns/iter")

        assert measurements[0].value == 12
        assert measurements[0].error_range == 0.0

    def test_no_bench_lines_is_malformed(self, commit: Commit) -> None:
        """Output without results cannot be parsed."""
        with pytest.raises(MalformedOutputError, match="no benchmark results"):
            parse("cargo", b"running 0 tests\n", commit, date=1)


class TestGoParser:
    """Tests for go test -bench output."""

    def test_parses_bench_lines(self) -> None:
        """The first value/unit pair is the measurement."""
        measurements = GoParser().parse_records(GO_OUTPUT)

        assert [m.name for m in measurements] == ["BenchmarkFib10", "BenchmarkFib20"]
        fib10 = measurements[0]
        assert fib10.value == 410
        assert fib10.unit == "ns/op"
        assert fib10.error_range == 0.0
        assert fib10.extra == "3000000 times\n8 procs\n0 B/op\n0 allocs/op"
        assert measurements[1].extra == "30000 times"

    def test_unpaired_metrics_are_malformed(self) -> None:
        """Metrics come in value/unit pairs."""
        with pytest.raises(MalformedOutputError):
            GoParser().parse_records("BenchmarkBad-8  100  410 ns/op  7")


class TestPytestBenchmarkParser:
    """Tests for pytest-benchmark JSON."""

    def test_parses_rates(self) -> None:
        """Values are operations per second with the rate-space range."""
        measurements = PytestBenchmarkParser().parse_records(json.dumps(PYTEST_OUTPUT))

        sort = measurements[0]
        assert sort.name == "tests/test_sort.py::test_sort"
        assert sort.value == pytest.approx(500.0)
        assert sort.unit == "iter/sec"
        assert sort.error_range == pytest.approx(25.0)
        assert sort.extra == "mean: 0.002 sec\nrounds: 100"

    def test_ops_derived_from_mean(self) -> None:
        """Without ops, the rate is 1 / mean."""
        measurements = PytestBenchmarkParser().parse_records(json.dumps(PYTEST_OUTPUT))

        assert measurements[1].value == pytest.approx(250.0)
        assert measurements[1].error_range == 0.0

    def test_missing_benchmarks_list(self) -> None:
        """The report must contain a benchmarks list."""
        with pytest.raises(MalformedOutputError):
            PytestBenchmarkParser().parse_records('{"machine_info": {}}')

    def test_invalid_json(self) -> None:
        """Non-JSON output is malformed."""
        with pytest.raises(MalformedOutputError, match="not valid JSON"):
            PytestBenchmarkParser().parse_records("not json")


class TestGoogleBenchmarkParser:
    """Tests for Google Benchmark JSON."""

    def test_single_run(self) -> None:
        """A single iteration row is used as is."""
        measurements = GoogleBenchmarkParser().parse_records(json.dumps(GOOGLE_OUTPUT))

        sort = measurements[0]
        assert sort.name == "BM_Sort/1024"
        assert sort.value == 120.5
        assert sort.unit == "ns/iter"
        assert sort.error_range == 0.0
        assert sort.extra == "iterations: 5000\ncpu: 119.0 ns"

    def test_aggregates_feed_value_and_range(self) -> None:
        """Mean and stddev aggregates become value and range."""
        measurements = GoogleBenchmarkParser().parse_records(json.dumps(GOOGLE_OUTPUT))

        assert len(measurements) == 2
        copy = measurements[1]
        assert copy.name == "BM_Copy"
        assert copy.value == 50.0
        assert copy.error_range == 2.5
        assert copy.unit == "us/iter"

    def test_repetitions_without_aggregates_are_averaged(self) -> None:
        """Repeated rows without aggregates are averaged."""
        output = {
            "benchmarks": [
                {"name": "BM_X", "run_type": "iteration", "real_time": 10.0, "time_unit": "ns"},
                {"name": "BM_X", "run_type": "iteration", "real_time": 12.0, "time_unit": "ns"},
            ]
        }

        measurements = GoogleBenchmarkParser().parse_records(json.dumps(output))

        assert measurements[0].value == pytest.approx(11.0)
        assert measurements[0].error_range == pytest.approx(math.sqrt(2))


class TestCustomParser:
    """Tests for custom JSON arrays."""

    def test_verbatim_results(self) -> None:
        """Values, units, text ranges and extras are kept."""
        text = json.dumps(
            [
                {"name": "parse 1MB", "value": 12.5, "unit": "ms", "range": "± 0.3"},
                {"name": "throughput", "value": 830, "unit": "req/s", "range": 4, "extra": "8 workers"},
            ]
        )

        measurements = CustomParser("customBiggerIsBetter", bigger_is_better=True).parse_records(text)

        assert measurements[0].error_range == pytest.approx(0.3)
        assert measurements[1].value == 830
        assert measurements[1].error_range == 4.0
        assert measurements[1].extra == "8 workers"

    def test_missing_unit(self) -> None:
        """Records need a name, a value and a unit."""
        with pytest.raises(MalformedOutputError, match="missing unit"):
            CustomParser("customSmallerIsBetter", bigger_is_better=False).parse_records('[{"name": "a", "value": 1}]')

    def test_not_an_array(self) -> None:
        """The document must be an array."""
        with pytest.raises(MalformedOutputError):
            CustomParser("customSmallerIsBetter", bigger_is_better=False).parse_records('{"name": "a"}')


# ============================================================================
# parse() Tests
# ============================================================================


class TestParse:
    """Tests for the parse entry point."""

    def test_builds_batch(self, commit: Commit) -> None:
        """parse wraps the measurements into a batch."""
        batch = parse("cargo", CARGO_OUTPUT.encode(), commit, date=1666614539978, suite="Rust Benchmark")

        assert batch.tool == "cargo"
        assert batch.suite == "Rust Benchmark"
        assert batch.commit == commit
        assert batch.date == 1666614539978
        assert len(batch) == 3

    def test_suite_defaults_to_tool(self, commit: Commit) -> None:
        """Without a suite, the tool name is used."""
        batch = parse("go", GO_OUTPUT.encode(), commit, date=1)

        assert batch.suite == "go"

    @pytest.mark.parametrize("raw_value", ['"NaN"', '"Infinity"', "NaN", "-Infinity"])
    def test_non_finite_value(self, commit: Commit, raw_value: str) -> None:
        """NaN and infinities are rejected with NonFiniteValueError."""
        raw = f'[{{"name": "a", "value": {raw_value}, "unit": "ms"}}]'.encode()

        with pytest.raises(NonFiniteValueError):
            parse("customSmallerIsBetter", raw, commit, date=1)

    def test_duplicate_names(self, commit: Commit) -> None:
        """Repeated benchmark names in one run are malformed."""
        raw = b"test a ... bench: 1 ns/iter (+/- 0)\ntest a ... bench: 2 ns/iter (+/- 0)\n"

        with pytest.raises(MalformedOutputError, match="duplicate"):
            parse("cargo", raw, commit, date=1)

    def test_empty_name(self, commit: Commit) -> None:
        """Records need a non-empty name."""
        raw = b'[{"name": "  ", "value": 1, "unit": "ms"}]'

        with pytest.raises(MalformedOutputError, match="empty name"):
            parse("customSmallerIsBetter", raw, commit, date=1)

    def test_invalid_utf8(self, commit: Commit) -> None:
        """Output must be UTF-8."""
        with pytest.raises(MalformedOutputError, match="UTF-8"):
            parse("cargo", b"\xff\xfe\xfa", commit, date=1)
