"""Payload normalization helpers for the telemetry_ingest Lambda."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, dict):
            return parsed
    return None


def normalize_payload(body: Any, raw_body: Optional[bytes] = None) -> Optional[Dict[str, Any]]:
    """Turn a request body into a dict, falling back to the raw bytes.

    Returns ``None`` when neither source holds a JSON object.
    """
    payload = _as_object(body)
    if payload is None and raw_body:
        payload = _as_object(raw_body)
    return payload
