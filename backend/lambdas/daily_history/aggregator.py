"""Per-room daily totals of node metrics."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

import logging

logger = logging.getLogger(__name__)

SUMMED_METRICS = ("electric", "water")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def business_date(now: Optional[datetime] = None, utc_offset_hours: int = 7) -> date:
    """Local calendar date the job closes, using a fixed UTC offset."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return (now + timedelta(hours=utc_offset_hours)).date()


def sum_room(nodes: Dict[str, Any]) -> Dict[str, Any]:
    totals: Dict[str, Any] = {}
    for node in nodes.values():
        last_data = node.get("lastData") if isinstance(node, dict) else None
        if not isinstance(last_data, dict):
            continue
        for metric in SUMMED_METRICS:
            value = last_data.get(metric)
            if _is_number(value):
                totals[metric] = totals.get(metric, 0) + value
    return totals


def room_totals(buildings: Optional[Dict[str, Any]]) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
    """Yield (building_id, room_id, totals) for rooms with at least one metric."""
    for building_id, building in (buildings or {}).items():
        rooms = building.get("rooms") if isinstance(building, dict) else None
        if not rooms:
            continue
        for room_id, room in rooms.items():
            nodes = room.get("nodes") if isinstance(room, dict) else None
            if not nodes:
                continue
            totals = sum_room(nodes)
            if totals:
                yield building_id, room_id, totals


def history_path(building_id: str, room_id: str, day: date) -> str:
    return f"buildings/{building_id}/rooms/{room_id}/history/{day.isoformat()}"


def write_daily_history(store, day: date) -> int:
    buildings = store.read("buildings")
    if not buildings:
        logger.info("No buildings found, nothing to aggregate")
        return 0

    written = 0
    for building_id, room_id, totals in room_totals(buildings):
        path = history_path(building_id, room_id, day)
        store.set(path, totals)
        logger.info("History saved: %s = %s", path, totals)
        written += 1
    return written
