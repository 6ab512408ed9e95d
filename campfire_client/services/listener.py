import json
import threading
from concurrent.futures import Future
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Literal

from pydantic import ValidationError

from campfire_client.core.exceptions import (
    ListenFailed,
    MalformedTimestampError,
    StreamStateError,
    UserFetchError,
)
from campfire_client.core.logging import get_logger
from campfire_client.models import Message
from campfire_client.services.streaming import JSONStream

if TYPE_CHECKING:
    from campfire_client.services.room import Room

logger = get_logger("StreamSession")

MessageCallback = Callable[[Message], Any]
FailurePolicy = Literal["skip", "abort"]


class StreamStatus(str, Enum):
    IDLE = "idle"
    JOINING = "joining"
    LISTENING = "listening"
    STOPPED = "stopped"
    FAILED = "failed"


class StreamSession:
    """
    Live subscription of one room.

    listen() joins the room, runs the transport on a background thread and
    blocks until the stream is stopped or fails. Messages reach the callback
    on the transport's loop thread, strictly in arrival order.
    """

    def __init__(self, room: "Room", transport_factory: Callable[..., Any] = JSONStream.connect):
        self.room = room
        self.transport_factory = transport_factory
        self.status = StreamStatus.IDLE

        self._transport = None
        self._done: Future | None = None
        self._lock = threading.Lock()

    @property
    def listening(self) -> bool:
        return self._transport is not None

    def listen(self, callback: MessageCallback, on_failure: FailurePolicy | None = None, **options) -> None:
        """
        Deliver each new message of the room to callback until stopped.

        Args:
            callback: Called with every normalized Message
            on_failure: "skip" or "abort" when a message's user can't be fetched;
                defaults to the normalization_failure setting
            **options: Overrides for the transport (host, path, timeout, ...)

        Raises:
            ListenFailed: the transport reported an error, ran out of
                reconnects, or stopped on its own
            StreamStateError: the room is already being listened to
        """
        if not callable(callback):
            raise ValueError("no callback provided")

        with self._lock:
            if self.status in (StreamStatus.JOINING, StreamStatus.LISTENING):
                raise StreamStateError(f"Already listening to {self.room.name}")
            self.status = StreamStatus.JOINING

        settings = self.room.connection.settings
        policy = on_failure or settings.normalization_failure

        try:
            logger.info(f"Joining {self.room.name}…")
            self.room.join()

            username, password = self.room.connection.basic_auth_material()
            transport_options = {
                "host": settings.streaming_host,
                "path": self.room.room_url_for("live"),
                "auth": f"{username}:{password}",
                "timeout": settings.stream_connect_timeout,
                "ssl": self.room.connection.ssl,
                "ssl_verify": settings.ssl_verify,
                "max_reconnects": settings.stream_max_reconnects,
                "reconnect_delay": settings.stream_reconnect_delay,
                "reconnect_max_delay": settings.stream_reconnect_max_delay,
            }
            transport_options.update(options)
            transport = self.transport_factory(**transport_options)
        except Exception:
            self.status = StreamStatus.FAILED
            raise

        done: Future = Future()
        transport.each_item(lambda frame: self._deliver(frame, callback, policy))
        transport.on_error(lambda payload: self._settle(
            done, ListenFailed(f"got an error! {payload!r}!", payload=payload)
        ))
        transport.on_max_reconnects(lambda timeout, retries: self._settle(
            done, ListenFailed(
                f"Tried {retries} times to connect. Got disconnected from {self.room.name}!",
                retries=retries,
            )
        ))

        with self._lock:
            self._transport = transport
            self._done = done
            self.status = StreamStatus.LISTENING

        logger.info("Starting event loop…")
        thread = threading.Thread(
            target=self._drive,
            args=(transport, done),
            name=f"campfire-stream-{self.room.id}",
            daemon=True,
        )
        thread.start()
        logger.info(f"Listening to {self.room.name}…")

        try:
            done.result()
        except BaseException:
            with self._lock:
                if self.status is StreamStatus.LISTENING:
                    self.status = StreamStatus.FAILED
            raise
        finally:
            transport.stop()
            with self._lock:
                if self._transport is transport:
                    self._transport = None
                    self._done = None
            thread.join(timeout=settings.stream_connect_timeout)

    def stop_listening(self) -> None:
        """Tear down the stream; listen() then returns normally"""
        with self._lock:
            transport, done = self._transport, self._done
            if transport is None:
                return
            self._transport = None
            self._done = None
            self.status = StreamStatus.STOPPED
            # settled before the transport stops, so its loop ending reads as a stop
            if not done.done():
                done.set_result(None)

        logger.info(f"Stopped listening to {self.room.name}…")
        transport.stop()

    def _drive(self, transport, done: Future):
        try:
            transport.run()
        except BaseException as e:
            self._settle(done, e)
        finally:
            # The loop ended without stop_listening() or a terminal event
            self._settle(done, ListenFailed(f"got disconnected from {self.room.name}!"))

    def _settle(self, done: Future, error: BaseException | None = None):
        with self._lock:
            if done.done():
                return
            if error is None:
                done.set_result(None)
            else:
                done.set_exception(error)

    def _deliver(self, frame: str, callback: MessageCallback, policy: FailurePolicy):
        if self._done is None or self._done.done():
            return

        try:
            raw = json.loads(frame)
        except ValueError:
            raw = None
        if not isinstance(raw, dict):
            logger.warning(f"Skipping undecodable frame from {self.room.name}: {frame[:80]!r}")
            return

        try:
            message = self.room.parse_message(raw)
        except (MalformedTimestampError, ValidationError) as e:
            logger.warning(f"Skipping message {raw.get('id')} in {self.room.name}: {e}")
            return
        except UserFetchError as e:
            if policy == "abort":
                raise
            logger.warning(f"Skipping message {raw.get('id')} in {self.room.name}: {e}")
            return

        callback(message)
