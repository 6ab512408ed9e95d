from datetime import date, datetime
from typing import Any, Dict

from campfire_client.core.exceptions import MalformedTimestampError
from campfire_client.models import User

# Campfire's own wire format, e.g. "2009/11/17 19:37:06 +0000"
WIRE_TIMESTAMP_FORMATS = (
    "%Y/%m/%d %H:%M:%S %z",
    "%Y/%m/%d %H:%M:%S",
)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp as sent by the service.

    Args:
        value: Wire string, or an already parsed datetime

    Returns:
        Parsed datetime

    Raises:
        MalformedTimestampError: value is missing or not a known format
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedTimestampError(value)

    text = value.strip()
    for fmt in WIRE_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise MalformedTimestampError(value) from None


def parse_user(record: Dict[str, Any]) -> User:
    """
    Build a User from a raw user record, parsing its created_at.

    Args:
        record: User dictionary from the API

    Returns:
        User model
    """
    data = dict(record)
    if data.get("created_at") is not None:
        data["created_at"] = parse_timestamp(data["created_at"])
    return User.model_validate(data)


def format_transcript_path(room_id: Any, transcript_date: date) -> str:
    """Path of a room's transcript for one day"""
    return f"/room/{room_id}/transcript/{transcript_date.strftime('%Y/%m/%d')}.json"
