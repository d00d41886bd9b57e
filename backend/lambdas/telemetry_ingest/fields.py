"""Per-metric value transforms applied before uplink data is stored."""

from __future__ import annotations

import math
from typing import Any, Dict

BATTERY_EMPTY_VOLTS = 3.2
BATTERY_FULL_VOLTS = 4.2


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def battery_percent(raw: float) -> int:
    """Convert a battery reading in hundredths of a volt to 0-100 %."""
    volts = raw / 100
    percent = (volts - BATTERY_EMPTY_VOLTS) / (BATTERY_FULL_VOLTS - BATTERY_EMPTY_VOLTS) * 100
    return max(0, min(100, _round_half_up(percent)))


def normalize_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    batt = data.get("batt")
    if isinstance(batt, (int, float)) and not isinstance(batt, bool) and math.isfinite(batt):
        data["batt"] = battery_percent(batt)
    return data
