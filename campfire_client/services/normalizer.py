from typing import Any, Dict

from campfire_client.models import Message
from campfire_client.services.user_cache import UserCache
from campfire_client.utils.formatters import parse_timestamp


class MessageNormalizer:
    """
    Turns raw wire messages into Message records.

    Expands user_id into the full user and parses created_at. Raises
    UserFetchError, MalformedTimestampError or pydantic's ValidationError
    (missing type, non-integer id) without partial results.
    """

    def __init__(self, user_cache: UserCache):
        self.user_cache = user_cache

    def normalize(self, raw_message: Dict[str, Any]) -> Message:
        data = dict(raw_message)
        user_id = data.pop("user_id", None)
        data["created_at"] = parse_timestamp(data.get("created_at"))
        data["user"] = self.user_cache.lookup_or_fetch(user_id) if user_id is not None else None
        return Message.model_validate(data)
