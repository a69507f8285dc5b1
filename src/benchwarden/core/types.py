"""Core type definitions for benchwarden.

This module defines the fundamental data structures that flow through
the pipeline: the commit a run was executed against, the individual
measurements a benchmark tool reported, and the batch grouping them.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

if TYPE_CHECKING:
    from collections.abc import Iterator


class Commit(BaseModel):
    """The code revision a benchmark run was executed against.

    Supplied by the CI environment and immutable once created. The field
    names follow the commit objects of GitHub push payloads, which is also
    how commits are stored in the history document. Keys benchwarden does
    not know about are kept so the document round-trips unchanged.

    Attributes:
        id: Content hash of the commit.
        author: Author identity (name, username, email).
        committer: Committer identity (name, username, email).
        message: Commit message.
        timestamp: Commit timestamp as reported by the VCS (ISO-8601).
        url: Link to the commit.

    Example:
        >>> commit = Commit(
        ...     id="66e74789a86f81adaa6c02e9124b4a4e1a1e05c8",
        ...     message="Initial Benchmark Work",
        ...     url="https://github.com/wnfs-wg/rs-wnfs/commit/66e7478",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    author: dict[str, Any] = Field(default_factory=dict, description="Author identity")
    committer: dict[str, Any] = Field(default_factory=dict, description="Committer identity")
    distinct: bool | None = Field(default=None, description="Whether the commit is distinct in its push")
    id: str = Field(..., min_length=1, description="Commit content hash")
    message: str = Field(default="", description="Commit message")
    timestamp: str | None = Field(default=None, description="Commit timestamp (ISO-8601)")
    tree_id: str | None = Field(default=None, description="Tree hash")
    url: str = Field(default="", description="Link to the commit")

    @property
    def short_id(self) -> str:
        """First seven characters of the commit id, as git displays it."""
        return self.id[:7]


class Measurement(BaseModel):
    """A single named metric from one benchmark run.

    Attributes:
        name: Benchmark name, unique within its run.
        value: Measured value. Integers stay integers.
        error_range: Noise of ``value`` (e.g. a standard deviation). Never negative.
        unit: Unit string, e.g. "ns/iter".
        extra: Optional free text the tool attaches (iterations, samples...).

    Example:
        >>> m = Measurement(name="Node set", value=210840, error_range=802, unit="ns/iter")
        >>> m.value
        210840
    """

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Benchmark name")
    value: int | float = Field(..., description="Measured value")
    error_range: float = Field(default=0.0, ge=0, description="Noise of the measured value")
    unit: str = Field(..., min_length=1, description="Unit of the value")
    extra: str | None = Field(default=None, description="Optional tool-specific details")

    @field_validator("value")
    @classmethod
    def _validate_finite(cls, value: int | float) -> int | float:
        """Reject NaN and infinities."""
        if isinstance(value, float) and not math.isfinite(value):
            msg = f"value must be finite, got {value}"
            raise ValueError(msg)
        return value


class MeasurementBatch(BaseModel):
    """One benchmark run's output.

    Attributes:
        tool: Identifier of the benchmark harness (e.g. "cargo").
        suite: Name the run is recorded under in the history (e.g.
            "Rust Benchmark"). Defaults to the tool identifier.
        commit: Commit the run was executed against.
        date: Wall-clock time of the run in epoch milliseconds.
        measurements: Measurements of the run; names are unique.

    Example:
        >>> batch = MeasurementBatch(
        ...     tool="cargo",
        ...     commit=commit,
        ...     date=1666614539978,
        ...     measurements=(Measurement(name="Node set", value=210840, unit="ns/iter"),),
        ... )
        >>> len(batch)
        1
    """

    model_config = {"frozen": True}

    tool: str = Field(..., min_length=1, description="Benchmark tool identifier")
    suite: str = Field(..., min_length=1, description="History key the run is recorded under")
    commit: Commit = Field(..., description="Commit the run was executed against")
    date: int = Field(..., ge=0, description="Run time in epoch milliseconds")
    measurements: tuple[Measurement, ...] = Field(..., description="Measurements of the run")

    @model_validator(mode="before")
    @classmethod
    def _default_suite(cls, data: Any) -> Any:
        """Record runs under the tool name unless a suite is given."""
        if isinstance(data, dict) and not data.get("suite"):
            data = {**data, "suite": data.get("tool")}
        return data

    @model_validator(mode="after")
    def _validate_unique_names(self) -> Self:
        """Validate that measurement names are unique within the run."""
        seen: set[str] = set()
        for measurement in self.measurements:
            if measurement.name in seen:
                msg = f"duplicate measurement name in batch: {measurement.name!r}"
                raise ValueError(msg)
            seen.add(measurement.name)
        return self

    @property
    def names(self) -> list[str]:
        """Measurement names in batch order."""
        return [m.name for m in self.measurements]

    def get(self, name: str) -> Measurement | None:
        """Return the measurement with the given name, if present."""
        for measurement in self.measurements:
            if measurement.name == name:
                return measurement
        return None

    def __len__(self) -> int:
        """Return the number of measurements in the batch."""
        return len(self.measurements)

    def __iter__(self) -> Iterator[Measurement]:  # type: ignore[override]
        """Iterate over the measurements of the batch."""
        return iter(self.measurements)
