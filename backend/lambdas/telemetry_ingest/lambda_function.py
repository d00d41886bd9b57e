"""AWS Lambda entry point for network-server webhook events."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from shared.store import build_store

from .classifier import classify
from .payload import normalize_payload
from .router import route_event

logger = logging.getLogger()
logger.setLevel(logging.INFO)

REGION = os.getenv("REGION", "us-east-1")
BUILDINGS_TABLE = os.getenv("BUILDINGS_TABLE", "buildings")
DEVICES_TABLE = os.getenv("DEVICES_TABLE", "devices")

store = build_store(REGION, BUILDINGS_TABLE, DEVICES_TABLE)

JSON_HEADERS = {"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"}
TEXT_HEADERS = {"Content-Type": "text/plain", "Access-Control-Allow-Origin": "*"}


def _json_response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {"statusCode": status_code, "headers": JSON_HEADERS, "body": json.dumps(body)}


def _text_response(status_code: int, message: str) -> Dict[str, Any]:
    return {"statusCode": status_code, "headers": TEXT_HEADERS, "body": message}


def _request_method(event: Dict[str, Any]) -> Optional[str]:
    method = event.get("httpMethod")
    if not method:
        method = ((event.get("requestContext") or {}).get("http") or {}).get("method")
    return method.upper() if method else None


def _request_body(event: Dict[str, Any]) -> Tuple[Any, Optional[bytes]]:
    """Return the body as delivered plus the raw bytes behind it."""
    body = event.get("body")
    if body is None:
        return None, None
    if event.get("isBase64Encoded") and isinstance(body, str):
        try:
            return body, base64.b64decode(body)
        except (binascii.Error, ValueError):
            return body, None
    if isinstance(body, str):
        return body, body.encode("utf-8")
    return body, None


def handle_webhook(event: Dict[str, Any], store) -> Dict[str, Any]:
    if _request_method(event) != "POST":
        return _text_response(405, "Method Not Allowed")

    body, raw_body = _request_body(event)
    payload = normalize_payload(body, raw_body)
    if payload is None:
        logger.error("Empty or invalid payload")
        return _text_response(400, "No payload received")

    classified = classify(payload)
    logger.info(
        "Processing webhook: eventType=%s devEui=%s gatewayId=%s",
        classified.event_type,
        classified.device_eui,
        classified.gateway_id,
    )
    return _json_response(200, route_event(store, classified, payload))


def lambda_handler(event, context):
    try:
        logger.info("telemetry_ingest triggered")
        return handle_webhook(event or {}, store)
    except Exception as exc:
        logger.error("Error processing webhook: %s", exc, exc_info=True)
        return _json_response(500, {"success": False, "error": str(exc)})
