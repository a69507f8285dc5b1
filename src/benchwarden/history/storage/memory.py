"""In-memory storage for the history document.

Useful for tests and for embedding benchwarden in a process that manages
persistence itself.
"""

from __future__ import annotations

from benchwarden.core.exceptions import ConflictError
from benchwarden.core.hashing import revision_of


class MemoryStore:
    """In-memory storage with compare-and-swap writes.

    Example:
        >>> store = MemoryStore()
        >>> content, token = await store.read()
        >>> token = await store.write(b"window.BENCHMARK_DATA = {}", token)
    """

    location = "memory"

    def __init__(self, content: bytes | None = None) -> None:
        """Initialize the store.

        Args:
            content: Initial content (None for an empty store).
        """
        self._content = content
        self.writes = 0

    @property
    def content(self) -> bytes | None:
        """Currently stored bytes."""
        return self._content

    async def read(self) -> tuple[bytes | None, str]:
        """Return the stored content and its revision token."""
        return self._content, revision_of(self._content)

    async def write(self, content: bytes, expected: str) -> str:
        """Replace the content if it is still at ``expected``.

        Raises:
            ConflictError: If the content changed since ``expected`` was read.
        """
        actual = revision_of(self._content)
        if actual != expected:
            raise ConflictError(expected, actual)
        self._content = content
        self.writes += 1
        return revision_of(content)
