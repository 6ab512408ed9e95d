import mimetypes
import os
from datetime import date
from typing import Any, BinaryIO, Callable, Dict, List
from urllib.parse import quote

from campfire_client.core.logging import get_logger
from campfire_client.models import Message, Upload, User
from campfire_client.services.connection import Connection
from campfire_client.services.listener import MessageCallback, StreamSession
from campfire_client.services.normalizer import MessageNormalizer
from campfire_client.services.room_state import RoomStateCache
from campfire_client.services.streaming import JSONStream
from campfire_client.services.user_cache import UserCache
from campfire_client.utils.formatters import format_transcript_path, parse_timestamp

logger = get_logger("Room")


class Room:
    """
    A Campfire room.

    Reads of topic() and current_users() always hit the service. The guest
    accessors, full() and users() load the room once and trust the cache
    afterwards.
    """

    def __init__(
        self,
        connection: Connection,
        attributes: Dict[str, Any],
        transport_factory: Callable[..., Any] = JSONStream.connect,
    ):
        self.connection = connection
        self.id = attributes["id"]
        self._name = attributes.get("name")

        self.state = RoomStateCache(connection, self.id, self._name)
        self.user_cache = UserCache(self.state)
        self.normalizer = MessageNormalizer(self.user_cache)
        self.stream = StreamSession(self, transport_factory)

    def __repr__(self) -> str:
        return f"<Room id={self.id} name={self.name!r}>"

    @property
    def name(self) -> str | None:
        if self.state.loaded:
            return self.state.state.name
        return self._name

    # ==================== MEMBERSHIP ====================

    def join(self):
        # join, leave, lock and unlock are still xml endpoints
        return self._post("join", format="xml")

    def leave(self):
        """Leave the room, closing any live stream on it"""
        result = self._post("leave", format="xml")
        self.stop_listening()
        return result

    def lock(self):
        """Lock the room to prevent new users from entering and to disable logging"""
        return self._post("lock", format="xml")

    def unlock(self):
        return self._post("unlock", format="xml")

    # ==================== ROOM STATE ====================

    def topic(self) -> str | None:
        """Current topic, always fetched fresh"""
        return self.state.force_reload().topic

    def current_users(self) -> List[User]:
        """Users currently chatting in the room, always fetched fresh"""
        return self.state.force_reload().users

    def users(self) -> List[User]:
        """Cached roster, loaded on first use"""
        return self.user_cache.roster

    def full(self) -> bool:
        return self.state.ensure_loaded().full

    def guest_access_enabled(self) -> bool:
        return bool(self.state.ensure_loaded().open_to_guests)

    def guest_invite_code(self) -> str | None:
        """The invite code used for guest access"""
        return self.state.ensure_loaded().guest_token

    def guest_url(self) -> str | None:
        if self.guest_access_enabled():
            return f"{self.connection.uri}/{self.guest_invite_code()}"
        return None

    def update(self, attributes: Dict[str, Any]):
        return self.state.update(attributes)

    def rename(self, name: str):
        return self.update({"name": name})

    def set_topic(self, topic: str):
        return self.update({"topic": topic})

    # ==================== USERS & MESSAGES ====================

    def user(self, user_id: Any) -> User | None:
        """The user with the given id, from the roster or fetched on a miss"""
        if user_id is None:
            return None
        return self.user_cache.lookup_or_fetch(user_id)

    def fetch_user(self, user_id: Any) -> User:
        return self.user_cache.fetch(user_id)

    def parse_message(self, message: Dict[str, Any]) -> Message:
        return self.normalizer.normalize(message)

    def speak(self, message: str):
        return self._send_message(message)

    def paste(self, message: str):
        return self._send_message(message, "PasteMessage")

    def play(self, sound: str):
        return self._send_message(sound, "SoundMessage")

    def tweet(self, url: str):
        return self._send_message(url, "TweetMessage")

    def transcript(self, transcript_date: date | None = None) -> List[Message]:
        """All messages posted on the given day, today by default"""
        path = format_transcript_path(self.id, transcript_date or date.today())
        return self._parse_messages(self.connection.get(path))

    def search(self, term: str) -> List[Message]:
        """Messages of this room matching term"""
        data = self.connection.get(f"/search/{quote(term, safe='')}.json")
        room_messages = [m for m in data.get("messages", []) if m.get("room_id") == self.id]
        return [self.parse_message(m) for m in room_messages]

    def recent(self, limit: int = 10, since_message_id: Any = None) -> List[Message]:
        """
        Latest messages of the room.

        Args:
            limit: Maximum number of messages
            since_message_id: Only messages created after this one
        """
        params = {"limit": limit, "since_message_id": "" if since_message_id is None else since_message_id}
        data = self.connection.get(self.room_url_for("recent"), params=params)
        return self._parse_messages(data)

    # ==================== FILES ====================

    def upload(
        self,
        file: str | BinaryIO,
        content_type: str | None = None,
        filename: str | None = None,
    ) -> Upload:
        """
        Upload a file to the room.

        Args:
            file: Path or open binary file
            content_type: MIME type, guessed from the file name when omitted
            filename: Name to upload under, defaults to the file's own
        """
        filename = filename or os.path.basename(file if isinstance(file, str) else getattr(file, "name", "upload"))
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        if isinstance(file, str):
            with open(file, "rb") as f:
                data = self.connection.raw_post(self.room_url_for("uploads"), files={"upload": (filename, f, content_type)})
        else:
            data = self.connection.raw_post(self.room_url_for("uploads"), files={"upload": (filename, file, content_type)})

        record = dict(data["upload"])
        if record.get("created_at") is not None:
            record["created_at"] = parse_timestamp(record["created_at"])
        logger.info(f"Uploaded {filename} to {self.name}")
        return Upload.model_validate(record)

    def files(self, count: int = 5) -> List[str]:
        """URLs of the latest files uploaded to the room"""
        data = self.connection.get(self.room_url_for("uploads"))
        return [u["full_url"] for u in data.get("uploads", [])][:count]

    # ==================== STREAMING ====================

    def listen(self, callback: MessageCallback, **options) -> None:
        """
        Block and deliver new messages to callback as they arrive.

            room.listen(lambda m: room.speak("Go away!") if "Java" in (m.body or "") else None)
        """
        self.stream.listen(callback, **options)

    @property
    def listening(self) -> bool:
        return self.stream.listening

    def stop_listening(self):
        self.stream.stop_listening()

    # ==================== HELPERS ====================

    def room_url_for(self, action: str, format: str = "json") -> str:
        return f"/room/{self.id}/{action}.{format}"

    def _send_message(self, message: str, type: str = "TextMessage"):
        return self._post("speak", {"message": {"body": message, "type": type}})

    def _post(self, action: str, body: Any = None, format: str = "json"):
        return self.connection.post(self.room_url_for(action, format), body)

    def _parse_messages(self, data: Any) -> List[Message]:
        return [self.parse_message(m) for m in (data or {}).get("messages", [])]
