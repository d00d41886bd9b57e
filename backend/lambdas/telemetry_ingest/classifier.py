"""Event type and identifier extraction for network-server webhooks.

Upstream senders spell the same fields differently, so each identifier is
read through an ordered list of accessors; the first truthy value wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

Accessor = Callable[[Dict[str, Any]], Any]

UP = "up"
JOIN = "join"
STATUS = "status"
UNKNOWN = "unknown"


def _get(mapping: Any, key: str) -> Any:
    if isinstance(mapping, dict):
        return mapping.get(key)
    return None


def _first_rx_gateway(container: Any) -> Any:
    rx_info = _get(container, "rxInfo")
    if isinstance(rx_info, list) and rx_info:
        return _get(rx_info[0], "gatewayId")
    return None


EVENT_TYPE_ACCESSORS = (
    lambda p: p.get("event"),
    lambda p: p.get("eventType"),
    lambda p: p.get("type"),
)

DEVICE_EUI_ACCESSORS = (
    lambda p: _get(p.get("deviceInfo"), "devEui"),
    lambda p: _get(p.get("deviceInfo"), "devEUI"),
)

GATEWAY_ID_ACCESSORS = (
    _first_rx_gateway,
    lambda p: _first_rx_gateway(p.get("uplinkEvent")),
    lambda p: p.get("gatewayId"),
    lambda p: p.get("gateway_id"),
)


def first_present(payload: Dict[str, Any], accessors: Iterable[Accessor], default: Any = None) -> Any:
    for accessor in accessors:
        value = accessor(payload)
        if value:
            return value
    return default


def has_block(payload: Dict[str, Any], key: str) -> bool:
    """True when ``key`` holds a block; an empty map or list still counts."""
    value = payload.get(key)
    return isinstance(value, (dict, list)) or bool(value)


def infer_event_type(payload: Dict[str, Any]) -> str:
    """Guess the event type from the payload shape, in fixed priority order."""
    if payload.get("data") and "fCnt" in payload and has_block(payload, "deviceInfo"):
        return UP
    if has_block(payload, "joinEvent"):
        return JOIN
    if has_block(payload, "statusEvent"):
        return STATUS
    if has_block(payload, "uplinkEvent"):
        return UP
    return UNKNOWN


@dataclass(frozen=True)
class ClassifiedEvent:
    event_type: str
    device_eui: str
    gateway_id: Optional[str]


def classify(payload: Dict[str, Any]) -> ClassifiedEvent:
    event_type = first_present(payload, EVENT_TYPE_ACCESSORS) or infer_event_type(payload)
    return ClassifiedEvent(
        event_type=event_type,
        device_eui=first_present(payload, DEVICE_EUI_ACCESSORS, default="unknown"),
        gateway_id=first_present(payload, GATEWAY_ID_ACCESSORS),
    )
