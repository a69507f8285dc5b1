"""Models for regression detection.

This module provides the detection configuration, the per-benchmark
verdicts, and the report the detector produces for one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Direction(str, Enum):
    """Which way a benchmark value improves."""

    LOWER = "lower"
    HIGHER = "higher"


class Method(str, Enum):
    """Statistical test used to compare a value with its baseline."""

    ZSCORE = "zscore"
    RATIO = "ratio"


class Verdict(str, Enum):
    """Outcome of evaluating one measurement."""

    OK = "ok"
    IMPROVED = "improved"
    REGRESSED = "regressed"
    NEW_BENCHMARK = "new-benchmark"
    UNIT_CHANGED = "unit-changed"


class RegressionConfig(BaseModel):
    """Configuration for regression detection.

    Attributes:
        threshold: For ``zscore``, how many baseline deviations a value may
            move before it counts (default 2.0). For ``ratio``, the factor by
            which a value may worsen (2.0 = 200%).
        window_size: Number of most recent points forming the baseline (default 5).
        epsilon: Floor of the deviation, so an unnaturally stable series does
            not divide by (nearly) zero.
        method: Statistical test to apply.
        default_direction: Direction of benchmarks absent from ``directions``.
        directions: Per-benchmark direction overrides.

    Example:
        >>> config = RegressionConfig(directions={"threads": Direction.HIGHER})
        >>> config.direction_for("threads")
        <Direction.HIGHER: 'higher'>
    """

    model_config = {"frozen": True}

    threshold: float = Field(default=2.0, gt=0, description="Detection threshold")
    window_size: int = Field(default=5, ge=1, description="Baseline window size")
    epsilon: float = Field(default=1e-9, gt=0, description="Floor of the baseline deviation")
    method: Method = Field(default=Method.ZSCORE, description="Statistical test")
    default_direction: Direction = Field(default=Direction.LOWER, description="Direction of unlisted benchmarks")
    directions: dict[str, Direction] = Field(default_factory=dict, description="Per-benchmark directions")

    def direction_for(self, name: str) -> Direction:
        """Direction configured for a benchmark name."""
        return self.directions.get(name, self.default_direction)

    def with_overrides(self, **overrides: Any) -> RegressionConfig:
        """Return a copy with the given non-None fields replaced.

        ``directions`` are merged into the existing mapping rather than
        replacing it.
        """
        update = {k: v for k, v in overrides.items() if v is not None}
        if "directions" in update:
            update["directions"] = {**self.directions, **update["directions"]}
        return self.model_validate({**self.model_dump(), **update})

    @classmethod
    def from_yaml(cls, path: Path | str) -> RegressionConfig:
        """Load the ``regression`` section of a YAML configuration file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            RegressionConfig loaded from the file (defaults if the section is absent).

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML is invalid or not a mapping.
        """
        from benchwarden.core.config import load_yaml_section

        return cls.model_validate(load_yaml_section(path, "regression"))

    def to_yaml(self, path: Path | str) -> None:
        """Save the configuration as the ``regression`` section of a YAML file."""
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {"regression": self.model_dump(mode="json")}
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


@dataclass(frozen=True)
class BaselineStats:
    """Statistics of the baseline a value was compared with.

    Attributes:
        mean: Mean of the baseline values.
        stddev: Deviation used for the comparison.
        sample_size: Number of baseline points.
        values: The baseline values, oldest first.
        stddev_source: "sample" for the sample standard deviation, or
            "reported" when a single point's own error range stood in for it.
    """

    mean: float
    stddev: float
    sample_size: int
    values: tuple[float, ...]
    stddev_source: str = "sample"


@dataclass(frozen=True)
class MeasurementVerdict:
    """Verdict for one measurement of a run.

    Attributes:
        name: Benchmark name.
        verdict: The outcome.
        value: The new value.
        unit: Unit of the new value.
        direction: Direction the benchmark improves in.
        delta: Score computed by the detection method (None when no
            comparison was made).
        baseline: Baseline statistics (None for new benchmarks and unit changes).
        previous_unit: Unit recorded before, for ``unit-changed`` verdicts.
    """

    name: str
    verdict: Verdict
    value: float
    unit: str
    direction: Direction = Direction.LOWER
    delta: float | None = None
    baseline: BaselineStats | None = None
    previous_unit: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        data: dict[str, Any] = {
            "name": self.name,
            "verdict": self.verdict.value,
            "value": self.value,
            "unit": self.unit,
            "direction": self.direction.value,
            "delta": self.delta,
        }
        if self.baseline is not None:
            data["baseline"] = {
                "mean": self.baseline.mean,
                "stddev": self.baseline.stddev,
                "sample_size": self.baseline.sample_size,
                "values": list(self.baseline.values),
                "stddev_source": self.baseline.stddev_source,
            }
        if self.previous_unit is not None:
            data["previous_unit"] = self.previous_unit
        return data


@dataclass
class RegressionReport:
    """Verdicts for every measurement of one run.

    Ephemeral: consumed by the report emitter and never persisted.

    Attributes:
        suite: History key of the run.
        tool: Tool that produced the run.
        commit_id: Commit the run was executed against.
        method: Detection method used.
        threshold: Threshold used.
        verdicts: One verdict per measurement, in batch order.
        timestamp: When the evaluation was performed.

    Example:
        >>> report = detector.evaluate(batch, doc)
        >>> [v.name for v in report.regressed]
        ['Node set']
    """

    suite: str
    tool: str
    commit_id: str
    method: Method
    threshold: float
    verdicts: list[MeasurementVerdict]
    timestamp: datetime = field(default_factory=datetime.now)

    def with_verdict(self, verdict: Verdict) -> list[MeasurementVerdict]:
        """Verdicts equal to ``verdict``, in batch order."""
        return [v for v in self.verdicts if v.verdict == verdict]

    @property
    def regressed(self) -> list[MeasurementVerdict]:
        """Measurements that regressed."""
        return self.with_verdict(Verdict.REGRESSED)

    @property
    def improved(self) -> list[MeasurementVerdict]:
        """Measurements that improved."""
        return self.with_verdict(Verdict.IMPROVED)

    @property
    def unit_changed(self) -> list[MeasurementVerdict]:
        """Measurements whose unit differs from the recorded one."""
        return self.with_verdict(Verdict.UNIT_CHANGED)

    @property
    def new_benchmarks(self) -> list[MeasurementVerdict]:
        """Measurements never recorded before."""
        return self.with_verdict(Verdict.NEW_BENCHMARK)

    @property
    def has_regressions(self) -> bool:
        """Check if any regressions were detected."""
        return bool(self.regressed)

    def get(self, name: str) -> MeasurementVerdict | None:
        """Verdict of the named measurement, if present."""
        for verdict in self.verdicts:
            if verdict.name == name:
                return verdict
        return None

    def counts(self) -> dict[str, int]:
        """Number of verdicts of each kind."""
        return {v.value: len(self.with_verdict(v)) for v in Verdict}

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON output."""
        return {
            "suite": self.suite,
            "tool": self.tool,
            "commit": self.commit_id,
            "method": self.method.value,
            "threshold": self.threshold,
            "timestamp": self.timestamp.isoformat(),
            "counts": self.counts(),
            "verdicts": [v.to_dict() for v in self.verdicts],
        }
