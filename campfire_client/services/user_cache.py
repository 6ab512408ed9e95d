from typing import Any

from campfire_client.core.exceptions import CampfireError, UserFetchError
from campfire_client.core.logging import get_logger
from campfire_client.models import User
from campfire_client.services.room_state import RoomStateCache
from campfire_client.utils.formatters import parse_user

logger = get_logger("UserCache")


class UserCache:
    """Users seen in a room, backed by the room's roster"""

    def __init__(self, room_state: RoomStateCache):
        self.room_state = room_state

    @property
    def roster(self) -> list[User]:
        return self.room_state.ensure_loaded().users

    def lookup(self, user_id: Any) -> User | None:
        return next((user for user in self.roster if user.id == user_id), None)

    def lookup_or_fetch(self, user_id: Any) -> User:
        """
        Return the roster entry for user_id, fetching and appending it on a miss.

        Raises:
            UserFetchError: the user could not be fetched
        """
        cached = self.lookup(user_id)
        if cached is not None:
            return cached

        user = self.fetch(user_id)
        self.roster.append(user)
        return user

    def fetch(self, user_id: Any) -> User:
        """Perform a request for the user with the given id"""
        logger.debug(f"Fetching user {user_id}")
        try:
            data = self.room_state.connection.get(f"/users/{user_id}.json")
        except CampfireError as e:
            raise UserFetchError(f"Could not fetch user {user_id}: {e}", user_id=user_id) from e

        record = data.get("user") if isinstance(data, dict) else None
        if not record:
            raise UserFetchError(f"No record returned for user {user_id}", user_id=user_id)
        return parse_user(record)
