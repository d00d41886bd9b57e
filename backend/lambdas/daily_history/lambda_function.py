"""Scheduled Lambda that closes the day with per-room metric totals.

Triggered by an EventBridge rule at 23:55 UTC+7 (``cron(55 16 * * ? *)``)
and deployed with reserved concurrency 1.
"""

from __future__ import annotations

import json
import logging
import os

from shared.store import build_store

from .aggregator import business_date, write_daily_history

logger = logging.getLogger()
logger.setLevel(logging.INFO)

REGION = os.getenv("REGION", "us-east-1")
BUILDINGS_TABLE = os.getenv("BUILDINGS_TABLE", "buildings")
DEVICES_TABLE = os.getenv("DEVICES_TABLE", "devices")
HISTORY_UTC_OFFSET_HOURS = int(os.getenv("HISTORY_UTC_OFFSET_HOURS", "7"))

store = build_store(REGION, BUILDINGS_TABLE, DEVICES_TABLE)


def lambda_handler(event, context):
    try:
        logger.info("daily_history triggered")
        day = business_date(utc_offset_hours=HISTORY_UTC_OFFSET_HOURS)
        written = write_daily_history(store, day)
        logger.info("Complete: %d history records for %s", written, day.isoformat())
        return {
            "statusCode": 200,
            "body": json.dumps({"success": True, "date": day.isoformat(), "written": written}),
        }
    except Exception as exc:
        logger.error("Unhandled error: %s", exc, exc_info=True)
        return {"statusCode": 500, "body": json.dumps({"error": str(exc)})}
