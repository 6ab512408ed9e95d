from typing import Any, Callable, Dict, List

import httpx

from campfire_client.config import Settings
from campfire_client.core.logging import get_logger
from campfire_client.models import User
from campfire_client.services.connection import Connection
from campfire_client.services.room import Room
from campfire_client.services.streaming import JSONStream
from campfire_client.utils.formatters import parse_user

logger = get_logger("Campfire")


class Campfire:
    """
    Entry point to one Campfire account.

        campfire = Campfire("mycompany", token="546884b3d8fee4d80665g561caf7h9f3ea7b999e")
        room = campfire.find_room_by_name("Lobby")
        room.speak("Hello")

    The connection is shared by every room built from this client.
    """

    def __init__(
        self,
        subdomain: str,
        token: str | None = None,
        oauth_token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
        stream_factory: Callable[..., Any] = JSONStream.connect,
    ):
        self.connection = Connection(
            subdomain,
            token=token,
            oauth_token=oauth_token,
            username=username,
            password=password,
            settings=settings,
            transport=transport,
        )
        self.stream_factory = stream_factory

    # ==================== ROOMS ====================

    def rooms(self) -> List[Room]:
        """All rooms of the account"""
        return self._build_rooms(self.connection.get("/rooms.json"))

    def presence(self) -> List[Room]:
        """Rooms the authenticated user is currently in"""
        return self._build_rooms(self.connection.get("/presence.json"))

    def find_room_by_id(self, room_id: Any) -> Room | None:
        room_id = int(room_id)
        return next((room for room in self.rooms() if room.id == room_id), None)

    def find_room_by_name(self, name: str) -> Room | None:
        return next((room for room in self.rooms() if room.name == name), None)

    def create_room(self, name: str, topic: str | None = None) -> Room | None:
        """Create a room and return it"""
        room = {"name": name}
        if topic is not None:
            room["topic"] = topic
        self.connection.post("/rooms.json", {"room": room})
        logger.info(f"Created room {name}")
        return self.find_room_by_name(name)

    def find_or_create_room_by_name(self, name: str) -> Room | None:
        return self.find_room_by_name(name) or self.create_room(name)

    # ==================== USERS ====================

    def users(self) -> List[User]:
        """Users chatting in any room, without duplicates"""
        seen: Dict[int, User] = {}
        for room in self.rooms():
            for user in room.current_users():
                seen.setdefault(user.id, user)
        return list(seen.values())

    def user(self, user_id: Any) -> User | None:
        data = self.connection.get(f"/users/{user_id}.json")
        record = data.get("user") if isinstance(data, dict) else None
        return parse_user(record) if record else None

    def me(self) -> User:
        """The authenticated user"""
        return parse_user(self.connection.get("/users/me.json")["user"])

    def close(self):
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _build_rooms(self, data: Any) -> List[Room]:
        return [
            Room(self.connection, attributes, transport_factory=self.stream_factory)
            for attributes in (data or {}).get("rooms", [])
        ]
