from typing import Any, Dict

from campfire_client.core.logging import get_logger
from campfire_client.models import RoomState
from campfire_client.services.connection import Connection
from campfire_client.utils.formatters import parse_user

logger = get_logger("RoomStateCache")


class RoomStateCache:
    """
    Last-fetched metadata of one room.

    There is no expiry. ensure_loaded() fetches at most once, force_reload()
    always fetches and replaces everything, roster included.
    """

    def __init__(self, connection: Connection, room_id: int, name: str | None = None):
        self.connection = connection
        self.state = RoomState(id=room_id, name=name)

    @property
    def path(self) -> str:
        return f"/room/{self.state.id}.json"

    @property
    def loaded(self) -> bool:
        return self.state.loaded

    def ensure_loaded(self) -> RoomState:
        """Fetch the room unless it has been fetched before"""
        if not self.state.loaded:
            self.force_reload()
        return self.state

    def force_reload(self) -> RoomState:
        """Fetch the room and overwrite every cached field"""
        attributes = self.connection.get(self.path)["room"]
        users = [parse_user(user) for user in attributes.get("users") or []]

        self.state = RoomState.model_validate({**attributes, "users": users, "loaded": True})
        logger.debug(f"Reloaded room {self.state.id} with {len(users)} users")
        return self.state

    def update(self, attributes: Dict[str, Any]) -> Any:
        """
        PUT a partial set of room attributes.

        The cached state is left untouched; reload to read the new values.
        """
        return self.connection.put(self.path, {"room": attributes})
