"""File storage for the history document.

This module provides the backend for a history document kept as a file,
typically ``dev/bench/data.js`` on a pages branch.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from benchwarden.core.exceptions import ConflictError, StorageError
from benchwarden.core.hashing import revision_of, short_revision

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

DEFAULT_STALE_LOCK_SECONDS = 60.0


class FileStore:
    """File storage with compare-and-swap writes.

    The revision token is the SHA-256 of the file bytes. A write first
    takes a lock file (created exclusively, never waited on), re-reads the
    file to check the token, then replaces the file with a temp file +
    rename, so readers see either the old or the new document.

    Example:
        >>> store = FileStore("gh-pages/dev/bench/data.js")
        >>> content, token = await store.read()
        >>> token = await store.write(new_content, token)
    """

    def __init__(
        self,
        path: str | Path,
        stale_lock_seconds: float = DEFAULT_STALE_LOCK_SECONDS,
    ) -> None:
        """Initialize the file store.

        Args:
            path: Path to the history document.
            stale_lock_seconds: Age after which a leftover lock file is
                considered abandoned and removed.
        """
        self._path = Path(path)
        self._lock_path = self._path.with_name(f".{self._path.name}.lock")
        self._stale_lock_seconds = stale_lock_seconds

    @property
    def path(self) -> Path:
        """Path of the history document."""
        return self._path

    @property
    def location(self) -> str:
        """Human-readable location for messages."""
        return str(self._path)

    def _read_bytes(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot read {self._path}: {e}") from e

    async def read(self) -> tuple[bytes | None, str]:
        """Read the document file.

        Returns:
            Tuple of (content, revision token); (None, "absent") if the file
            does not exist yet.
        """
        content = self._read_bytes()
        return content, revision_of(content)

    def _clear_stale_lock(self) -> bool:
        """Remove the lock file if it is older than the stale threshold."""
        try:
            age = time.time() - self._lock_path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age < self._stale_lock_seconds:
            return False
        logger.warning(f"Removing stale lock {self._lock_path} ({age:.0f}s old)")
        self._lock_path.unlink(missing_ok=True)
        return True

    @contextmanager
    def _exclusive(self, expected: str) -> Iterator[None]:
        """Hold the write lock for the duration of a compare-and-swap.

        Raises:
            ConflictError: If another writer holds the lock.
        """
        fd: int | None = None
        for _ in range(2):
            try:
                fd = os.open(self._lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                break
            except FileExistsError:
                if not self._clear_stale_lock():
                    break
            except OSError as e:
                raise StorageError(f"Cannot create lock {self._lock_path}: {e}") from e
        if fd is None:
            raise ConflictError(expected, None, f"{self._path} is being written by another process")
        try:
            os.write(fd, str(os.getpid()).encode())
            os.close(fd)
            yield
        finally:
            self._lock_path.unlink(missing_ok=True)

    async def write(self, content: bytes, expected: str) -> str:
        """Replace the document if it is still at ``expected``.

        Args:
            content: New document bytes.
            expected: Revision token the caller read.

        Returns:
            Revision token of the new content.

        Raises:
            ConflictError: If the file changed since it was read, or is locked.
            StorageError: If the file cannot be written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory {self._path.parent}: {e}") from e

        with self._exclusive(expected):
            actual = revision_of(self._read_bytes())
            if actual != expected:
                logger.warning(
                    f"Revision mismatch on {self._path}: expected {short_revision(expected)}, "
                    f"found {short_revision(actual)}"
                )
                raise ConflictError(expected, actual)

            # Atomic write: write to temp file, then rename
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.stem}_",
                suffix=".tmp",
            )
            try:
                with os.fdopen(temp_fd, "wb") as f:
                    f.write(content)
                Path(temp_path).replace(self._path)
            except OSError as e:
                Path(temp_path).unlink(missing_ok=True)
                raise StorageError(f"Cannot write {self._path}: {e}") from e

        new_revision = revision_of(content)
        logger.debug(f"Wrote {len(content)} bytes to {self._path} (revision {short_revision(new_revision)})")
        return new_revision
