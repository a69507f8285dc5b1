"""Base protocol for history storage backends.

This module defines the StorageProtocol that all storage backends must implement.
Backends store opaque bytes and expose compare-and-swap writes keyed on a
revision token, which is all HistoryStore needs for optimistic concurrency.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for history storage backends.

    Example:
        >>> class MyStorage:
        ...     location = "s3://bucket/data.js"
        ...     async def read(self) -> tuple[bytes | None, str]: ...
        ...     async def write(self, content: bytes, expected: str) -> str: ...
        >>> isinstance(MyStorage(), StorageProtocol)
        True
    """

    location: str

    async def read(self) -> tuple[bytes | None, str]:
        """Read the stored content.

        Returns:
            Tuple of (content, revision token). Content is None when
            nothing has been stored yet.

        Raises:
            StorageError: If the backend cannot be read.
        """
        ...

    async def write(self, content: bytes, expected: str) -> str:
        """Replace the stored content if it is still at ``expected``.

        The write is all-or-nothing: either the whole content is replaced
        or storage is left unchanged.

        Args:
            content: New content.
            expected: Revision token the caller read.

        Returns:
            Revision token of the new content.

        Raises:
            ConflictError: If storage is no longer at ``expected``.
            StorageError: If the backend cannot be written.
        """
        ...
