"""Decoding of the base64 ``data`` blob carried by uplinks."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import re
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

RAW_DATA_KEY = "rawData"

Value = Union[int, float, str]


INTEGER_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)
DECIMAL_RE = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?", re.ASCII)


class DecodeError(ValueError):
    """The blob is not valid base64."""


def _coerce(value: str) -> Value:
    if INTEGER_RE.fullmatch(value):
        return int(value)
    if DECIMAL_RE.fullmatch(value):
        number = float(value)
        if math.isfinite(number):
            return number
    return value


def _reject_constant(name: str) -> None:
    raise ValueError(f"Non-finite JSON constant: {name}")


def parse_pairs(text: str) -> Dict[str, Value]:
    """Parse ``key:value,key:value`` text; incomplete pairs are dropped."""
    decoded: Dict[str, Value] = {}
    for pair in text.split(","):
        key, _, value = pair.partition(":")
        key = key.strip()
        value = value.strip()
        if key and value:
            decoded[key] = _coerce(value)
    return decoded


def decode_text(text: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return parse_pairs(text)
    if isinstance(parsed, dict):
        return parsed
    return {}


def decode_payload(data: Optional[str], capture_raw: bool = True) -> Dict[str, Any]:
    """Decode a base64 blob into a metric map.

    When the blob itself cannot be decoded, the original string is kept
    under ``rawData``; with ``capture_raw=False`` a DecodeError is raised
    instead.
    """
    if not data:
        return {}
    try:
        text = base64.b64decode(data).decode("utf-8", errors="replace")
    except (binascii.Error, TypeError, ValueError) as exc:
        if not capture_raw:
            raise DecodeError(str(exc)) from exc
        logger.error("Error decoding data: %s", exc)
        return {RAW_DATA_KEY: data}

    logger.info("Decoded string: %s", text)
    return decode_text(text)


def flatten(decoded: Dict[str, Any]) -> Dict[str, Any]:
    """Lift the fields of a nested ``data`` map to the top level."""
    nested = decoded.get("data")
    if not isinstance(nested, dict):
        return decoded
    flat = dict(decoded)
    flat.update(nested)
    flat.pop("data", None)
    return flat
