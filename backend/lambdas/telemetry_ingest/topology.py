"""Locate a device inside the building/room/node tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import logging

logger = logging.getLogger(__name__)

BUILDINGS_ROOT = "buildings"
DEVICES_ROOT = "devices"


@dataclass(frozen=True)
class Placement:
    building_id: str
    room_id: str

    def last_data_path(self, device_eui: str) -> str:
        return (
            f"{BUILDINGS_ROOT}/{self.building_id}/rooms/{self.room_id}"
            f"/nodes/{device_eui}/lastData"
        )


def device_last_data_path(device_eui: str) -> str:
    return f"{DEVICES_ROOT}/{device_eui}/lastData"


def resolve_placement(
    gateway_id: Optional[str], device_eui: str, buildings: Optional[Dict[str, Any]]
) -> Optional[Placement]:
    """Return the first building/room holding the device behind this gateway.

    Buildings and rooms are visited in storage order and the scan stops at
    the first hit. A device listed under several rooms is not reported.
    """
    if not gateway_id or not buildings:
        return None

    for building_id, building in buildings.items():
        if not isinstance(building, dict) or building.get("gateway_id") != gateway_id:
            continue
        logger.info("Found matching building: %s with gateway: %s", building_id, gateway_id)
        for room_id, room in (building.get("rooms") or {}).items():
            nodes = room.get("nodes") if isinstance(room, dict) else None
            if isinstance(nodes, dict) and nodes.get(device_eui) is not None:
                return Placement(building_id, room_id)
    return None


def lookup_placement(store, gateway_id: Optional[str], device_eui: str) -> Optional[Placement]:
    """Read the topology from the store and resolve; store errors count as a miss."""
    if not gateway_id:
        return None
    try:
        buildings = store.read(BUILDINGS_ROOT)
    except Exception as exc:
        logger.error("Error searching building structure: %s", exc, exc_info=True)
        return None
    return resolve_placement(gateway_id, device_eui, buildings)
