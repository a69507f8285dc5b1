"""Wire format of the persisted history document.

The document is stored as a script that binds a global to the JSON
object, so a static dashboard can load it with a ``<script>`` tag::

    window.BENCHMARK_DATA = {
      "lastUpdate": 1666614540564,
      "repoUrl": "https://github.com/wnfs-wg/rs-wnfs",
      "entries": { "Rust Benchmark": [ ... ] }
    }

Encoding reproduces what ``JSON.stringify(data, null, 2)`` writes:
two-space indentation, non-ASCII characters kept as is (``"± 802"``) and
numbers in their JavaScript form (``210840`` rather than ``210840.0``,
``0.000015`` rather than ``1.5e-05``). Entries that were not touched
therefore re-serialize byte for byte.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from pydantic import ValidationError

from benchwarden.core.exceptions import DocumentFormatError
from benchwarden.history.models import HistoryDocument

DEFAULT_GLOBAL_NAME = "window.BENCHMARK_DATA"

_ASSIGNMENT = re.compile(r"^\s*(?:(?:window|globalThis|self)\.)?[A-Za-z_$][\w$]*\s*=\s*")

_INDENT = "  "


def js_number(value: int | float) -> str:
    """Format a number the way JavaScript's ``Number.prototype.toString`` does.

    Uses the shortest digits that round-trip (as ``repr`` does) but places
    the decimal point like JavaScript: plain notation for magnitudes in
    ``[1e-7, 1e21)``, exponent notation (``1e-7``, ``1e+21``) outside it.
    Non-finite values become ``null``, as in JSON.

    Example:
        >>> js_number(1.5e-05)
        '0.000015'
        >>> js_number(210840.0)
        '210840'
    """
    if isinstance(value, int) and abs(value) < 10**21:
        return str(value)

    value = float(value)
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    mantissa, _, exponent = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    digits = int_part + frac_part
    point = len(int_part) + int(exponent or 0)

    stripped = digits.lstrip("0")
    point -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        text = digits + "0" * (point - k)
    elif 0 < point <= 21:
        text = f"{digits[:point]}.{digits[point:]}"
    elif -6 < point <= 0:
        text = "0." + "0" * -point + digits
    else:
        e = point - 1
        text = digits[0] + (f".{digits[1:]}" if k > 1 else "") + f"e{'+' if e > 0 else '-'}{abs(e)}"
    return sign + text


def _dump(value: Any, level: int = 0) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return js_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)

    inner = _INDENT * (level + 1)
    outer = _INDENT * level
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [f"{inner}{json.dumps(str(k), ensure_ascii=False)}: {_dump(v, level + 1)}" for k, v in value.items()]
        return "{\n" + ",\n".join(items) + f"\n{outer}}}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{inner}{_dump(v, level + 1)}" for v in value]
        return "[\n" + ",\n".join(items) + f"\n{outer}]"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(doc: HistoryDocument, global_name: str = DEFAULT_GLOBAL_NAME) -> bytes:
    """Serialize a document to its script-loadable form.

    Args:
        doc: Document to serialize.
        global_name: Global the script assigns the data to.

    Returns:
        UTF-8 encoded script.
    """
    return f"{global_name} = {_dump(doc.to_dict())}".encode()


def decode(content: bytes) -> HistoryDocument:
    """Parse a stored document.

    Accepts the script form (``window.BENCHMARK_DATA = {...}``, with or
    without a trailing semicolon) as well as plain JSON.

    Args:
        content: Stored bytes.

    Returns:
        The decoded HistoryDocument. Empty content yields an empty document.

    Raises:
        DocumentFormatError: If the content is not a valid history document.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DocumentFormatError(f"History document is not valid UTF-8: {e}") from e

    if not text.strip():
        return HistoryDocument.empty()

    text = _ASSIGNMENT.sub("", text, count=1).strip()
    if text.endswith(";"):
        text = text[:-1].rstrip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"History document is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DocumentFormatError(f"History document must be an object, got {type(data).__name__}")

    try:
        return HistoryDocument.from_dict(data)
    except ValidationError as e:
        raise DocumentFormatError(f"History document has an unexpected shape: {e}") from e
