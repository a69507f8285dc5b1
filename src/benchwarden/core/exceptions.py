"""Custom exceptions for benchwarden.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchwardenError for easy catching.

A detected regression is never an exception: it is a normal result carried
by RegressionReport and EmitOutcome.
"""

from __future__ import annotations


class BenchwardenError(Exception):
    """Base exception for all benchwarden errors.

    Example:
        >>> try:
        ...     # benchwarden operations
        ...     pass
        ... except BenchwardenError as e:
        ...     print(f"benchwarden error: {e}")
    """


class ConfigurationError(BenchwardenError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("Invalid direction 'sideways' for 'Node set'")
    """


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class ParseError(BenchwardenError):
    """Raised when benchmark tool output cannot be turned into a batch.

    Always fatal for the run: the pipeline aborts before anything is appended.

    Attributes:
        tool: Name of the tool whose output failed to parse.
    """

    def __init__(self, tool: str, reason: str) -> None:
        """Initialize ParseError.

        Args:
            tool: Name of the tool whose output failed to parse.
            reason: Description of what went wrong.
        """
        self.tool = tool
        self.reason = reason
        super().__init__(f"Failed to parse '{tool}' output: {reason}")


class MalformedOutputError(ParseError):
    """Raised when the structural markers an adapter expects are absent."""


class NonFiniteValueError(ParseError):
    """Raised when a measurement value is NaN or infinite."""

    def __init__(self, tool: str, name: str, value: float) -> None:
        self.name = name
        self.value = value
        super().__init__(tool, f"value of '{name}' is not finite ({value})")


class UnknownToolError(ParseError):
    """Raised when no parser is registered for the requested tool."""

    def __init__(self, tool: str, known: list[str]) -> None:
        self.known = known
        super().__init__(tool, f"unknown tool (known tools: {', '.join(sorted(known))})")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class AppendError(BenchwardenError):
    """Base class for errors raised while appending a batch to the history."""


class DuplicateCommitError(AppendError):
    """Raised when the history already holds an entry for this commit and suite.

    Callers treat this as a no-op: ingesting the same commit twice is
    idempotent and must not fail the pipeline.
    """

    def __init__(self, suite: str, commit_id: str) -> None:
        self.suite = suite
        self.commit_id = commit_id
        super().__init__(f"Commit {commit_id} is already recorded for '{suite}'")


class OutOfOrderError(AppendError):
    """Raised when a batch is not newer than the newest entry recorded for its suite."""

    def __init__(self, suite: str, date: int, last_date: int) -> None:
        self.suite = suite
        self.date = date
        self.last_date = last_date
        super().__init__(
            f"Batch for '{suite}' is dated {date}, which is not after the last recorded entry ({last_date}); "
            "dates must strictly increase within a suite"
        )


class StorageError(BenchwardenError):
    """Raised when the storage backend cannot be read or written.

    Example:
        >>> raise StorageError("Permission denied: gh-pages/dev/bench/data.js")
    """


class DocumentFormatError(StorageError):
    """Raised when the persisted history document cannot be decoded."""


class ConflictError(BenchwardenError):
    """Raised when the stored document changed since it was loaded.

    The caller must reload, re-append and retry. Raised again by the
    pipeline once its retry budget is exhausted.

    Attributes:
        expected: Revision token the writer based its changes on.
        actual: Revision token found in storage at write time.
    """

    def __init__(self, expected: str, actual: str | None, message: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"History changed since load (expected revision {expected}, found {actual})")


class NotificationError(BenchwardenError):
    """Raised when a notification sink fails to deliver a summary."""
