"""Benchmark history module for benchwarden.

This module owns the persisted history document: its model, its
script-loadable wire format, and HistoryStore, which loads, appends to
and atomically persists it.

Example:
    >>> from benchwarden.history import FileStore, HistoryStore
    >>>
    >>> store = HistoryStore(FileStore("dev/bench/data.js"))
    >>> doc, token = await store.load()
    >>> store.append(doc, batch)
    >>> await store.persist(doc, token)
"""

from __future__ import annotations

from benchwarden.history.models import (
    BenchmarkEntry,
    BenchmarkSeries,
    BenchResult,
    HistoryDocument,
    SeriesPoint,
)
from benchwarden.history.storage import FileStore, MemoryStore, StorageProtocol
from benchwarden.history.store import AppendResult, HistoryStore

__all__ = [
    "AppendResult",
    "BenchResult",
    "BenchmarkEntry",
    "BenchmarkSeries",
    "FileStore",
    "HistoryDocument",
    "HistoryStore",
    "MemoryStore",
    "SeriesPoint",
    "StorageProtocol",
]
