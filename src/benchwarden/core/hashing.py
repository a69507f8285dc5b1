"""Shared hashing utilities for benchwarden.

Revision tokens identify the exact persisted state a reader observed.
For stored documents they are the SHA-256 of the stored bytes, so any
writer (including one that is not benchwarden) changes the token.

Design goals:
- Deterministic: same bytes always produce the same token
- Full SHA256 stored; short form only for display
"""

from __future__ import annotations

import hashlib

# Token for storage that does not exist yet
ABSENT_REVISION = "absent"


def sha256_bytes(data: bytes) -> str:
    """
    Compute full SHA256 hex digest of raw bytes.

    Args:
        data: Bytes to hash.

    Returns:
        64-character hexadecimal SHA256 digest.

    Example:
        >>> len(sha256_bytes(b"hello"))
        64
    """
    return hashlib.sha256(data).hexdigest()


def revision_of(content: bytes | None) -> str:
    """Compute the revision token for stored content.

    Args:
        content: Stored bytes, or None when nothing is stored yet.

    Returns:
        ABSENT_REVISION for missing content, otherwise the SHA-256 digest.

    Example:
        >>> revision_of(None)
        'absent'
        >>> len(revision_of(b"window.BENCHMARK_DATA = {}"))
        64
    """
    if content is None:
        return ABSENT_REVISION
    return sha256_bytes(content)


def short_revision(token: str, length: int = 12) -> str:
    """Shorten a revision token for log messages.

    Args:
        token: Full revision token.
        length: Number of characters to keep (default 12).

    Returns:
        Truncated token; ABSENT_REVISION is returned unchanged.
    """
    if token == ABSENT_REVISION:
        return token
    return token[:length]
