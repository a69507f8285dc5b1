"""benchwarden: Benchmark history and regression gating for CI."""

from __future__ import annotations

from benchwarden.core.gating import EmitConfig, EmitOutcome, GatingResult, ReportEmitter
from benchwarden.core.types import Commit, Measurement, MeasurementBatch
from benchwarden.history import FileStore, HistoryDocument, HistoryStore, MemoryStore
from benchwarden.parsers import parse
from benchwarden.pipeline import PipelineResult, RetryPolicy, run_pipeline
from benchwarden.regression import RegressionConfig, RegressionDetector, RegressionReport, Verdict

__version__ = "0.3.0"
__all__ = [
    # Types
    "Commit",
    "Measurement",
    "MeasurementBatch",
    # Parsing
    "parse",
    # History
    "FileStore",
    "HistoryDocument",
    "HistoryStore",
    "MemoryStore",
    # Regression detection
    "RegressionConfig",
    "RegressionDetector",
    "RegressionReport",
    "Verdict",
    # Gating
    "EmitConfig",
    "EmitOutcome",
    "GatingResult",
    "ReportEmitter",
    # Pipeline
    "PipelineResult",
    "RetryPolicy",
    "run_pipeline",
    "__version__",
]
