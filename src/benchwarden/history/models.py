"""Models for the benchmark history document.

The history document is the root aggregate that accumulates every run:
a mapping from suite name (usually the tool name) to the ordered list of
per-run entries. Field
aliases follow the persisted wire names (``lastUpdate``, ``repoUrl``,
``range``) so that documents written by other producers load unchanged.

BenchmarkSeries is a derived, read-only view of one benchmark across
the entries of one suite.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from benchwarden.core.types import Commit, Measurement, MeasurementBatch

if TYPE_CHECKING:
    from collections.abc import Iterator

_RANGE_NUMBER = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


def format_number(value: float) -> str:
    """Format a number the way the history document stores it.

    Example:
        >>> format_number(802.0)
        '802'
        >>> format_number(1.25)
        '1.25'
    """
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def parse_range(raw: str | float | None) -> float:
    """Extract the numeric error range from a stored ``range`` value.

    Ranges are stored as text such as ``"± 802"`` or ``"+/- 0.5"``, and
    occasionally as bare numbers.

    Args:
        raw: The stored range value.

    Returns:
        The non-negative error range, or 0.0 when none can be read.

    Example:
        >>> parse_range("± 802")
        802.0
        >>> parse_range(None)
        0.0
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return abs(float(raw)) if math.isfinite(raw) else 0.0
    match = _RANGE_NUMBER.search(raw.replace(",", ""))
    if match is None:
        return 0.0
    value = abs(float(match.group()))
    return value if math.isfinite(value) else 0.0


class BenchResult(BaseModel):
    """One benchmark result inside a stored entry.

    Attributes:
        name: Benchmark name.
        value: Measured value.
        range: Error range as stored (usually text like "± 802").
        unit: Unit of the value.
        extra: Optional tool-specific details.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    value: int | float
    range_text: str | int | float | None = Field(default=None, alias="range")
    unit: str
    extra: str | None = None

    @property
    def error_range(self) -> float:
        """Numeric error range of this result."""
        return parse_range(self.range_text)

    @classmethod
    def from_measurement(cls, measurement: Measurement) -> BenchResult:
        """Build the stored form of a measurement.

        Args:
            measurement: Measurement reported by a tool.

        Returns:
            BenchResult with the range rendered as "± n".
        """
        fields: dict[str, Any] = {
            "name": measurement.name,
            "value": measurement.value,
            "range": f"± {format_number(measurement.error_range)}",
            "unit": measurement.unit,
        }
        if measurement.extra is not None:
            fields["extra"] = measurement.extra
        return cls(**fields)


class BenchmarkEntry(BaseModel):
    """The stored record of one benchmark run.

    Attributes:
        commit: Commit the run was executed against.
        date: Run time in epoch milliseconds.
        tool: Benchmark tool identifier.
        benches: Results of the run.
    """

    model_config = ConfigDict(extra="allow")

    commit: Commit
    date: int
    tool: str
    benches: list[BenchResult] = Field(default_factory=list)

    @classmethod
    def from_batch(cls, batch: MeasurementBatch) -> BenchmarkEntry:
        """Build the stored record of a measurement batch."""
        return cls(
            commit=batch.commit,
            date=batch.date,
            tool=batch.tool,
            benches=[BenchResult.from_measurement(m) for m in batch.measurements],
        )

    def find(self, name: str) -> BenchResult | None:
        """Return the result with the given benchmark name, if present."""
        for bench in self.benches:
            if bench.name == name:
                return bench
        return None


@dataclass(frozen=True)
class SeriesPoint:
    """One point of a benchmark series.

    Attributes:
        commit: Commit the value was measured on.
        date: Run time in epoch milliseconds.
        value: Measured value.
        error_range: Reported noise of the value.
        unit: Unit of the value.
    """

    commit: Commit
    date: int
    value: float
    error_range: float
    unit: str


@dataclass(frozen=True)
class BenchmarkSeries:
    """Ordered history of one (suite, benchmark name) pair.

    Points are ordered by date ascending.

    Example:
        >>> series = doc.series("Rust Benchmark", "Node set")
        >>> [p.value for p in series.tail(5)]
        [7000, 7100, 6900, 7050, 6950]
    """

    suite: str
    name: str
    points: tuple[SeriesPoint, ...]

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SeriesPoint]:
        return iter(self.points)

    @property
    def is_empty(self) -> bool:
        """Whether the benchmark has never been recorded for this suite."""
        return not self.points

    @property
    def latest(self) -> SeriesPoint | None:
        """Most recent point, if any."""
        return self.points[-1] if self.points else None

    @property
    def units(self) -> list[str]:
        """Distinct units used across the series, in order of first use."""
        seen: list[str] = []
        for point in self.points:
            if point.unit not in seen:
                seen.append(point.unit)
        return seen

    def tail(self, size: int) -> tuple[SeriesPoint, ...]:
        """Return the last ``size`` points."""
        if size <= 0:
            return ()
        return self.points[-size:]

    def excluding_commit(self, commit_id: str) -> BenchmarkSeries:
        """Return the series without points measured on ``commit_id``."""
        return BenchmarkSeries(
            suite=self.suite,
            name=self.name,
            points=tuple(p for p in self.points if p.commit.id != commit_id),
        )


class HistoryDocument(BaseModel):
    """Root aggregate of all recorded benchmark runs.

    Owned by HistoryStore: created on the first run and mutated only by
    HistoryStore.append.

    Attributes:
        last_update: Time of the last append in epoch milliseconds.
        repo_url: URL of the benchmarked repository.
        entries: Mapping from suite name to its entries, oldest first.

    Example:
        >>> doc = HistoryDocument.empty("https://github.com/wnfs-wg/rs-wnfs")
        >>> doc.suites()
        []
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    last_update: int = Field(default=0, alias="lastUpdate")
    repo_url: str = Field(default="", alias="repoUrl")
    entries: dict[str, list[BenchmarkEntry]] = Field(default_factory=dict)

    @classmethod
    def empty(cls, repo_url: str = "", last_update: int = 0) -> HistoryDocument:
        """Create a document for a repository that has no history yet."""
        return cls(last_update=last_update, repo_url=repo_url, entries={})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryDocument:
        """Create a document from its decoded JSON form."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert the document to its JSON form.

        Only keys that were present when the document was loaded (or set
        since) are emitted, so unaffected entries serialize exactly as they
        were read.
        """
        return self.model_dump(by_alias=True, exclude_unset=True)

    def suites(self) -> list[str]:
        """Suite names with recorded entries, in document order."""
        return list(self.entries)

    def entries_for(self, suite: str) -> list[BenchmarkEntry]:
        """Entries recorded for a suite, oldest first (empty if none)."""
        return self.entries.get(suite, [])

    def benchmark_names(self, suite: str) -> list[str]:
        """Every benchmark name recorded for a suite, in order of first appearance."""
        names: list[str] = []
        for entry in self.entries_for(suite):
            for bench in entry.benches:
                if bench.name not in names:
                    names.append(bench.name)
        return names

    def series(self, suite: str, name: str) -> BenchmarkSeries:
        """Project the series of one benchmark of one suite.

        Args:
            suite: Suite name (the key under ``entries``).
            name: Benchmark name.

        Returns:
            BenchmarkSeries ordered by date ascending (empty if never recorded).
        """
        points: list[SeriesPoint] = []
        for entry in self.entries_for(suite):
            bench = entry.find(name)
            if bench is None:
                continue
            points.append(
                SeriesPoint(
                    commit=entry.commit,
                    date=entry.date,
                    value=bench.value,
                    error_range=bench.error_range,
                    unit=bench.unit,
                )
            )
        points.sort(key=lambda p: p.date)
        return BenchmarkSeries(suite=suite, name=name, points=tuple(points))
