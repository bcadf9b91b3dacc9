"""Helpers for turning wire values into entity fields."""

from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def joined_name(row: dict[str, Any], relation: str = "players") -> str | None:
    """Read ``name`` from an embedded relation such as ``players(name)``."""
    embedded = row.get(relation)
    if isinstance(embedded, dict):
        return embedded.get("name")
    return None
