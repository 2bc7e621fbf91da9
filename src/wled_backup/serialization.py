"""orjson encoding of run summaries and decoding of device documents."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Any

import orjson

logger = logging.getLogger(__name__)


def json_default(obj: object) -> object:
    """Default handler for types orjson cannot serialize natively.

    Handles objects with a ``to_dict()`` method (``BackupRun``,
    ``BackupOutcome``), ``pathlib`` paths, and ``bytes`` (UTF-8 text, or
    hex when not valid UTF-8).

    :raises TypeError: If *obj* is not a recognised type.
    """
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, PurePath):
        return str(obj)
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return obj.hex()
    msg = f"Cannot serialize {type(obj).__name__}"
    raise TypeError(msg)


def encode_summary(obj: Any, *, pretty: bool = False) -> bytes:
    """Encode a run summary (or any object with ``to_dict()``, or a dict) as JSON."""
    data = obj.to_dict() if hasattr(obj, "to_dict") else obj
    option = orjson.OPT_NON_STR_KEYS
    if pretty:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(data, default=json_default, option=option)


def decode_document(raw: bytes) -> dict[str, Any]:
    """Decode a device's JSON document, which must be a JSON object.

    :raises orjson.JSONDecodeError: On invalid JSON (a ``ValueError``).
    :raises TypeError: If the document is not a JSON object.
    """
    result = orjson.loads(raw)
    if not isinstance(result, dict):
        msg = f"Expected JSON object, got {type(result).__name__}"
        logger.debug("decode failed: %s", msg)
        raise TypeError(msg)
    return result
