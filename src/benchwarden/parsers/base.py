"""Parser protocol and registry for benchmark tool output.

Every benchmark harness prints its results differently. A parser adapter
turns one harness's raw output into Measurements; ``parse`` wraps the
adapter result into a validated MeasurementBatch.
"""

from __future__ import annotations

import json
import logging
import math
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import ValidationError

from benchwarden.core.exceptions import MalformedOutputError, NonFiniteValueError, UnknownToolError
from benchwarden.core.types import Measurement, MeasurementBatch

if TYPE_CHECKING:
    from benchwarden.core.types import Commit

logger = logging.getLogger(__name__)


@runtime_checkable
class ParserProtocol(Protocol):
    """Protocol for benchmark output parsers.

    Attributes:
        tool: Tool name the parser is registered under.
        bigger_is_better: Natural direction of the values the tool reports.

    Example:
        >>> class MyParser:
        ...     tool = "mytool"
        ...     bigger_is_better = False
        ...
        ...     def parse_records(self, text: str) -> list[Measurement]:
        ...         return []
        >>> isinstance(MyParser(), ParserProtocol)
        True
    """

    tool: str
    bigger_is_better: bool

    def parse_records(self, text: str) -> list[Measurement]:
        """Extract measurements from raw tool output.

        Args:
            text: Decoded tool output.

        Returns:
            Measurements in output order.

        Raises:
            MalformedOutputError: If the expected structure is absent.
            NonFiniteValueError: If a value is NaN or infinite.
        """
        ...


_REGISTRY: dict[str, ParserProtocol] = {}


def register_parser(parser: ParserProtocol) -> None:
    """Register a parser under its tool name, replacing any previous one."""
    _REGISTRY[parser.tool] = parser


def get_parser(tool: str) -> ParserProtocol:
    """Look up the parser for a tool.

    Raises:
        UnknownToolError: If no parser is registered for the tool.
    """
    try:
        return _REGISTRY[tool]
    except KeyError:
        raise UnknownToolError(tool, list(_REGISTRY)) from None


def available_tools() -> list[str]:
    """Names of all registered tools, sorted."""
    return sorted(_REGISTRY)


def to_number(tool: str, name: str, raw: Any) -> int | float:
    """Convert a reported value to a number.

    Text such as ``"1,234"`` is accepted; values without a fractional part
    in text form stay integers.

    Raises:
        MalformedOutputError: If the value is not numeric.
        NonFiniteValueError: If the value is NaN or infinite.
    """
    if isinstance(raw, bool):
        raise MalformedOutputError(tool, f"value of '{name}' is not a number: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        number = raw
    elif isinstance(raw, str):
        text = raw.strip().replace(",", "")
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise MalformedOutputError(tool, f"value of '{name}' is not a number: {raw!r}") from None
    else:
        raise MalformedOutputError(tool, f"value of '{name}' is not a number: {raw!r}")

    if not math.isfinite(number):
        raise NonFiniteValueError(tool, name, number)
    return number


def make_measurement(
    tool: str,
    name: str,
    value: Any,
    unit: str,
    error_range: Any = 0.0,
    extra: str | None = None,
) -> Measurement:
    """Build a Measurement, translating invalid data into parse errors.

    Args:
        tool: Tool name, for error messages.
        name: Benchmark name.
        value: Reported value (number or numeric text).
        unit: Unit string.
        error_range: Reported noise (number or numeric text); defaults to 0.
        extra: Optional tool-specific details.

    Raises:
        MalformedOutputError: If the name or unit is empty or a number is invalid.
        NonFiniteValueError: If the value or range is NaN or infinite.
    """
    name = name.strip()
    if not name:
        raise MalformedOutputError(tool, "benchmark with an empty name")
    if not unit or not unit.strip():
        raise MalformedOutputError(tool, f"benchmark '{name}' has no unit")

    number = to_number(tool, name, value)
    noise = 0.0 if error_range is None else abs(float(to_number(tool, name, error_range)))

    try:
        return Measurement(name=name, value=number, error_range=noise, unit=unit.strip(), extra=extra)
    except ValidationError as e:
        raise MalformedOutputError(tool, f"invalid benchmark '{name}': {e}") from e


def load_json(tool: str, text: str) -> Any:
    """Decode JSON tool output.

    Raises:
        MalformedOutputError: If the output is not valid JSON.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(tool, f"output is not valid JSON: {e}") from e


def parse(
    tool_name: str,
    raw_output: bytes,
    commit: Commit,
    date: int,
    suite: str | None = None,
) -> MeasurementBatch:
    """Normalize one run of a benchmark tool into a MeasurementBatch.

    Pure function: the only side effect is debug logging.

    Args:
        tool_name: Name of the tool that produced the output.
        raw_output: The tool's raw output.
        commit: Commit the run was executed against.
        date: Wall-clock time of the run in epoch milliseconds.
        suite: Name the run is recorded under in the history (defaults to the tool name).

    Returns:
        The validated batch.

    Raises:
        UnknownToolError: If no parser is registered for ``tool_name``.
        MalformedOutputError: If the output lacks the expected structure,
            contains no benchmarks, or repeats a benchmark name.
        NonFiniteValueError: If a value is NaN or infinite.

    Example:
        >>> batch = parse("cargo", output, commit, date=1666614539978)
        >>> batch.names
        ['Node set', 'Namefilter add']
    """
    parser = get_parser(tool_name)

    try:
        text = raw_output.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedOutputError(tool_name, f"output is not valid UTF-8: {e}") from e

    measurements = parser.parse_records(text)
    if not measurements:
        raise MalformedOutputError(tool_name, "no benchmark results found")

    try:
        batch = MeasurementBatch(
            tool=tool_name,
            suite=suite or tool_name,
            commit=commit,
            date=date,
            measurements=tuple(measurements),
        )
    except ValidationError as e:
        raise MalformedOutputError(tool_name, str(e)) from e

    logger.debug(f"Parsed {len(batch)} measurements from '{tool_name}' output")
    return batch
