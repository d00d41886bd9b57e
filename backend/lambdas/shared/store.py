"""Path-addressed store on top of DynamoDB tables.

A path looks like ``buildings/B1/rooms/R1/nodes/AA/lastData``. The first
segment picks the table, the second is the item key and the rest is the
nested map attribute inside that item.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing tables cannot be read or written."""


def to_dynamo(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _attribute_path(segments: List[str], offset: int = 0) -> Tuple[str, Dict[str, str]]:
    names = {f"#p{offset + i}": segment for i, segment in enumerate(segments)}
    return ".".join(names), names


class TopologyStore:
    """read / set / remove / update by path over one table per root."""

    def __init__(self, tables: Dict[str, Tuple[Any, str]]):
        # root -> (boto3 Table, partition key attribute)
        self._tables = tables

    def _split(self, path: str) -> Tuple[Any, str, str, List[str]]:
        segments = [s for s in path.strip("/").split("/") if s]
        if not segments or segments[0] not in self._tables:
            raise StoreError(f"Unknown store path: {path}")
        table, key_name = self._tables[segments[0]]
        item_key = segments[1] if len(segments) > 1 else None
        return table, key_name, item_key, segments[2:]

    def read(self, path: str) -> Optional[Any]:
        table, key_name, item_key, attrs = self._split(path)
        try:
            if item_key is None:
                return self._scan(table, key_name)
            response = table.get_item(Key={key_name: item_key})
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Read failed for {path}: {exc}") from exc

        node = response.get("Item")
        if node is None:
            return None
        node = {k: v for k, v in node.items() if k != key_name}
        for attr in attrs:
            if not isinstance(node, dict) or attr not in node:
                return None
            node = node[attr]
        return from_dynamo(node)

    def _scan(self, table, key_name: str) -> Optional[Dict[str, Any]]:
        result: Dict[str, Any] = {}
        exclusive_start_key = None
        while True:
            scan_kwargs = {}
            if exclusive_start_key:
                scan_kwargs["ExclusiveStartKey"] = exclusive_start_key

            response = table.scan(**scan_kwargs)
            for item in response.get("Items", []):
                item_id = item[key_name]
                result[item_id] = from_dynamo({k: v for k, v in item.items() if k != key_name})

            exclusive_start_key = response.get("LastEvaluatedKey")
            if not exclusive_start_key:
                break
        return result or None

    def set(self, path: str, value: Any) -> None:
        table, key_name, item_key, attrs = self._split(path)
        if item_key is None:
            raise StoreError(f"Cannot replace a whole root: {path}")
        try:
            if not attrs:
                if not isinstance(value, dict):
                    raise StoreError(f"Item value must be a map: {path}")
                table.put_item(Item={**to_dynamo(value), key_name: item_key})
                return
            self._ensure_maps(table, key_name, item_key, attrs[:-1])
            expression, names = _attribute_path(attrs)
            table.update_item(
                Key={key_name: item_key},
                UpdateExpression=f"SET {expression} = :value",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues={":value": to_dynamo(value)},
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Write failed for {path}: {exc}") from exc
        logger.debug("Set %s", path)

    def remove(self, path: str) -> None:
        table, key_name, item_key, attrs = self._split(path)
        if item_key is None:
            raise StoreError(f"Cannot remove a whole root: {path}")
        try:
            if not attrs:
                table.delete_item(Key={key_name: item_key})
                return
            # REMOVE on a path whose parent map is missing is rejected by DynamoDB
            if self.read(path) is None:
                return
            expression, names = _attribute_path(attrs)
            table.update_item(
                Key={key_name: item_key},
                UpdateExpression=f"REMOVE {expression}",
                ExpressionAttributeNames=names,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Remove failed for {path}: {exc}") from exc
        logger.debug("Removed %s", path)

    def update(self, path: str, values: Dict[str, Any]) -> None:
        """Shallow merge of ``values`` into the map at ``path``."""
        table, key_name, item_key, attrs = self._split(path)
        if item_key is None:
            raise StoreError(f"Cannot update a whole root: {path}")
        if not values:
            return
        try:
            self._ensure_maps(table, key_name, item_key, attrs)
            base, names = _attribute_path(attrs)
            assignments = []
            expression_values = {}
            for index, (field, value) in enumerate(values.items()):
                placeholder = f"#f{index}"
                names[placeholder] = field
                target = f"{base}.{placeholder}" if base else placeholder
                assignments.append(f"{target} = :v{index}")
                expression_values[f":v{index}"] = to_dynamo(value)
            table.update_item(
                Key={key_name: item_key},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=expression_values,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Update failed for {path}: {exc}") from exc
        logger.debug("Updated %s with %d fields", path, len(values))

    def _ensure_maps(self, table, key_name: str, item_key: str, attrs: List[str]) -> None:
        for depth in range(1, len(attrs) + 1):
            expression, names = _attribute_path(attrs[:depth])
            table.update_item(
                Key={key_name: item_key},
                UpdateExpression=f"SET {expression} = if_not_exists({expression}, :empty)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues={":empty": {}},
            )


def build_store(region: str, buildings_table: str, devices_table: str) -> TopologyStore:
    dynamodb = boto3.resource("dynamodb", region_name=region)
    return TopologyStore(
        {
            "buildings": (dynamodb.Table(buildings_table), "building_id"),
            "devices": (dynamodb.Table(devices_table), "device_eui"),
        }
    )
