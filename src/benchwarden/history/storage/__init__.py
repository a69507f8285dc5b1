"""Storage backends for the history document.

Example:
    >>> from benchwarden.history.storage import FileStore
    >>> store = FileStore("gh-pages/dev/bench/data.js")
    >>> content, token = await store.read()
"""

from __future__ import annotations

from benchwarden.history.storage.base import StorageProtocol
from benchwarden.history.storage.file_store import FileStore
from benchwarden.history.storage.memory import MemoryStore

__all__ = [
    "FileStore",
    "MemoryStore",
    "StorageProtocol",
]
