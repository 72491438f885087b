"""
Key-value wrapper storing the credential record in DynamoDB.
"""

from __future__ import annotations

from typing import Any, Optional

import boto3

from app.core.config import StorageSettings


class DynamoDBStore:
    """Get/put of opaque string values keyed by partition key ``pk``."""

    def __init__(self, settings: StorageSettings, *, table: Any = None) -> None:
        if table is None:
            if not settings.dynamodb_table_name:
                raise ValueError("DYNAMODB_TABLE_NAME is required for the dynamodb backend.")
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def put(self, key: str, value: str) -> None:
        """Put an item in the DynamoDB table."""
        self._table.put_item(Item={"pk": key, "data": value})

    def get(self, key: str) -> Optional[str]:
        """Retrieve the stored value for ``key``."""
        response = self._table.get_item(Key={"pk": key})
        item = response.get("Item")
        if not item:
            return None
        return item.get("data")


__all__ = ["DynamoDBStore"]
