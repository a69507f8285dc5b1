"""High-level API for the benchmark history.

This module provides HistoryStore, the owner of the history document:
it loads the document together with a revision token, folds new runs
into it, and writes it back with optimistic concurrency.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from benchwarden.core.exceptions import DuplicateCommitError, OutOfOrderError
from benchwarden.core.hashing import short_revision
from benchwarden.history import codec
from benchwarden.history.models import BenchmarkEntry, HistoryDocument

if TYPE_CHECKING:
    from collections.abc import Callable

    from benchwarden.core.types import MeasurementBatch
    from benchwarden.history.storage import StorageProtocol

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class AppendResult:
    """Outcome of a successful append.

    Attributes:
        entry: The entry that was added.
        unit_changes: Benchmarks whose unit differs from the last recorded
            one, mapped to (previous unit, new unit).
        trimmed: Number of old entries dropped to respect max_items.
    """

    entry: BenchmarkEntry
    unit_changes: dict[str, tuple[str, str]] = field(default_factory=dict)
    trimmed: int = 0


class HistoryStore:
    """Durable, race-safe accumulation of benchmark runs.

    The store keeps no state between calls. Concurrent writers are
    detected at persist time through the revision token returned by load;
    the caller reloads, re-appends and retries.

    Example:
        >>> store = HistoryStore(FileStore("dev/bench/data.js"))
        >>> doc, token = await store.load()
        >>> store.append(doc, batch)
        >>> await store.persist(doc, token)
    """

    def __init__(
        self,
        backend: StorageProtocol,
        repo_url: str = "",
        max_items: int | None = None,
        global_name: str = codec.DEFAULT_GLOBAL_NAME,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Initialize with a storage backend.

        Args:
            backend: Storage backend holding the document.
            repo_url: Repository URL recorded in a newly created document.
            max_items: Keep only this many newest entries per suite (None = unlimited).
            global_name: Global the stored script assigns the data to.
            clock: Source of the ``lastUpdate`` timestamp (epoch millis).
        """
        self._backend = backend
        self._repo_url = repo_url
        self._max_items = max_items
        self._global_name = global_name
        self._clock = clock

    @property
    def backend(self) -> StorageProtocol:
        """The storage backend."""
        return self._backend

    async def load(self) -> tuple[HistoryDocument, str]:
        """Read the current document and its revision token.

        Returns:
            Tuple of (document, revision token). A backend with nothing
            stored yields an empty document.

        Raises:
            StorageError: If the backend cannot be read or the document is invalid.
        """
        content, token = await self._backend.read()
        if content is None:
            logger.info(f"No history at {self._backend.location}, starting a new document")
            return HistoryDocument.empty(repo_url=self._repo_url), token

        doc = codec.decode(content)
        if not doc.repo_url and self._repo_url:
            doc.repo_url = self._repo_url
        logger.debug(
            f"Loaded history from {self._backend.location} "
            f"({len(doc.suites())} suites, revision {short_revision(token)})"
        )
        return doc, token

    def append(self, doc: HistoryDocument, batch: MeasurementBatch) -> AppendResult:
        """Fold one run into the document.

        Args:
            doc: Document to mutate.
            batch: Run to add.

        Returns:
            AppendResult describing the added entry.

        Raises:
            DuplicateCommitError: If the suite already has an entry for this
                commit. The document is left untouched.
            OutOfOrderError: If the run is not newer than the suite's latest entry.
        """
        entries = doc.entries_for(batch.suite)

        for existing in entries:
            if existing.commit.id == batch.commit.id:
                raise DuplicateCommitError(batch.suite, batch.commit.id)

        if entries:
            last_date = max(e.date for e in entries)
            if batch.date <= last_date:
                raise OutOfOrderError(batch.suite, batch.date, last_date)

        unit_changes: dict[str, tuple[str, str]] = {}
        for measurement in batch.measurements:
            latest = doc.series(batch.suite, measurement.name).latest
            if latest is not None and latest.unit != measurement.unit:
                unit_changes[measurement.name] = (latest.unit, measurement.unit)
                logger.warning(
                    f"Unit of '{measurement.name}' ({batch.suite}) changed from {latest.unit} to {measurement.unit}"
                )

        entry = BenchmarkEntry.from_batch(batch)
        suite_entries = [*entries, entry]

        trimmed = 0
        if self._max_items is not None and len(suite_entries) > self._max_items:
            trimmed = len(suite_entries) - self._max_items
            del suite_entries[:trimmed]
            logger.info(f"Dropped {trimmed} oldest entries of '{batch.suite}' (max_items={self._max_items})")

        # Assignment marks the fields as set; in-place changes would be dropped by to_dict.
        doc.entries = {**doc.entries, batch.suite: suite_entries}
        doc.last_update = self._clock()
        logger.info(f"Appended {len(batch)} measurements of '{batch.suite}' for commit {batch.commit.short_id}")
        return AppendResult(entry=entry, unit_changes=unit_changes, trimmed=trimmed)

    async def persist(self, doc: HistoryDocument, expected_token: str) -> str:
        """Write the document back if storage is still at ``expected_token``.

        Args:
            doc: Document to write.
            expected_token: Token returned by the load the document came from.

        Returns:
            The new revision token.

        Raises:
            ConflictError: If another writer persisted in the meantime.
            StorageError: If the backend cannot be written.
        """
        content = codec.encode(doc, self._global_name)
        token = await self._backend.write(content, expected_token)
        logger.info(f"Persisted history to {self._backend.location} (revision {short_revision(token)})")
        return token
