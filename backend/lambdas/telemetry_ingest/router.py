"""Decode uplink data and write it to the node or the flat device registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import logging

from .classifier import UNKNOWN, UP, ClassifiedEvent, has_block
from .decoder import DecodeError, decode_payload, flatten
from .fields import normalize_fields
from .topology import device_last_data_path, lookup_placement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMode:
    """How one kind of event flows through decode and write."""

    label: str
    normalize_fields: bool
    capture_raw: bool
    merge_fallback: bool
    building_message: str


UPLINK = RouteMode(
    label=UP,
    normalize_fields=True,
    capture_raw=True,
    merge_fallback=False,
    building_message="Data replaced in building structure successfully",
)

UNKNOWN_WITH_DATA = RouteMode(
    label=UNKNOWN,
    normalize_fields=False,
    capture_raw=False,
    merge_fallback=True,
    building_message="Data replaced in building structure (unknown event with data)",
)


def _base_body(event: ClassifiedEvent, success: bool, message: str) -> Dict[str, Any]:
    return {
        "success": success,
        "message": message,
        "deviceEui": event.device_eui,
        "gatewayId": event.gateway_id,
    }


def _uplink_blob(payload: Dict[str, Any], mode: RouteMode) -> Optional[str]:
    uplink = payload.get("uplinkEvent")
    if mode is UNKNOWN_WITH_DATA:
        source = uplink if has_block(payload, "uplinkEvent") else payload
        return source.get("data") if isinstance(source, dict) else None
    if payload.get("data"):
        return payload["data"]
    return uplink.get("data") if isinstance(uplink, dict) else None


def _fallback_message(event: ClassifiedEvent, mode: RouteMode) -> str:
    if mode is UNKNOWN_WITH_DATA:
        return "Data replaced in devices (unknown event with data)"
    if event.gateway_id:
        return "Data replaced in devices (no matching building/room found)"
    return "Data replaced in devices (no gatewayId provided)"


def replace_value(store, path: str, value: Dict[str, Any]) -> None:
    store.remove(path)
    store.set(path, value)


def write_telemetry(store, event: ClassifiedEvent, data: Dict[str, Any], mode: RouteMode) -> Dict[str, Any]:
    """Persist a decoded map and describe where it went."""
    placement = lookup_placement(store, event.gateway_id, event.device_eui)

    if placement is not None:
        path = placement.last_data_path(event.device_eui)
        replace_value(store, path, data)
        logger.info("Data replaced in building structure: %s", path)
        body = _base_body(event, True, mode.building_message)
        body.update(
            {
                "buildingId": placement.building_id,
                "roomId": placement.room_id,
                "savedPath": path,
                "savedFields": data,
            }
        )
        return body

    path = device_last_data_path(event.device_eui)
    if mode.merge_fallback:
        store.update(path, data)
    else:
        replace_value(store, path, data)
    logger.info("Data saved to device registry: %s", path)
    body = _base_body(event, True, _fallback_message(event, mode))
    body.update({"savedPath": path, "savedFields": data})
    return body


def process_uplink(store, event: ClassifiedEvent, payload: Dict[str, Any], mode: RouteMode = UPLINK) -> Dict[str, Any]:
    blob = _uplink_blob(payload, mode)
    if mode is UNKNOWN_WITH_DATA and not blob:
        return _base_body(event, False, "No data field in unknown event")

    try:
        decoded = decode_payload(blob, capture_raw=mode.capture_raw)
    except DecodeError as exc:
        logger.warning("Undecodable %s event from %s: %s", mode.label, event.device_eui, exc)
        body = _base_body(event, False, "Error decoding unknown event data")
        body["error"] = str(exc)
        return body

    data = flatten(decoded)
    if not data:
        message = "No data to save" if mode is UPLINK else "No decodable data found"
        return _base_body(event, False, message)

    if mode.normalize_fields:
        data = normalize_fields(data)
    return write_telemetry(store, event, data, mode)


def route_event(store, event: ClassifiedEvent, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch a classified event; anything not carrying telemetry is acknowledged."""
    if event.event_type == UP:
        return process_uplink(store, event, payload, UPLINK)
    if event.event_type == UNKNOWN and (payload.get("data") or has_block(payload, "uplinkEvent")):
        return process_uplink(store, event, payload, UNKNOWN_WITH_DATA)

    body = _base_body(event, True, f"Event type '{event.event_type}' acknowledged but not processed")
    body["eventType"] = event.event_type
    return body
