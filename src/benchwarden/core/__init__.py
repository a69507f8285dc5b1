"""Core module for benchwarden.

This module contains the fundamental types, exceptions, configuration
and CI gating used throughout the library.
"""

from __future__ import annotations

from benchwarden.core.config import Settings
from benchwarden.core.exceptions import (
    AppendError,
    BenchwardenError,
    ConfigurationError,
    ConflictError,
    DocumentFormatError,
    DuplicateCommitError,
    MalformedOutputError,
    NonFiniteValueError,
    NotificationError,
    OutOfOrderError,
    ParseError,
    StorageError,
    UnknownToolError,
)
from benchwarden.core.gating import (
    EmitConfig,
    EmitOutcome,
    GatingResult,
    ReportEmitter,
)
from benchwarden.core.types import Commit, Measurement, MeasurementBatch

__all__ = [
    # Config
    "Settings",
    # Exceptions
    "AppendError",
    "BenchwardenError",
    "ConfigurationError",
    "ConflictError",
    "DocumentFormatError",
    "DuplicateCommitError",
    "MalformedOutputError",
    "NonFiniteValueError",
    "NotificationError",
    "OutOfOrderError",
    "ParseError",
    "StorageError",
    "UnknownToolError",
    # Gating
    "EmitConfig",
    "EmitOutcome",
    "GatingResult",
    "ReportEmitter",
    # Types
    "Commit",
    "Measurement",
    "MeasurementBatch",
]
