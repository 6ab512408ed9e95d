"""
Client for the Campfire group-chat API.
"""

from .config import Settings, get_settings
from .core.exceptions import (
    AuthResolutionError,
    AuthenticationFailure,
    CampfireConnectionError,
    CampfireError,
    HTTPRequestError,
    ListenFailed,
    MalformedTimestampError,
    StreamStateError,
    UserFetchError,
)
from .core.logging import setup_logging
from .models import Message, RoomState, Upload, User
from .services.campfire import Campfire
from .services.connection import Connection
from .services.listener import StreamSession, StreamStatus
from .services.room import Room
from .services.streaming import JSONStream

__version__ = "1.0.0"

__all__ = [
    "Campfire",
    "Connection",
    "Room",
    "StreamSession",
    "StreamStatus",
    "JSONStream",
    "Settings",
    "get_settings",
    "setup_logging",
    # Models
    "Message",
    "RoomState",
    "Upload",
    "User",
    # Errors
    "CampfireError",
    "AuthResolutionError",
    "AuthenticationFailure",
    "CampfireConnectionError",
    "HTTPRequestError",
    "ListenFailed",
    "MalformedTimestampError",
    "StreamStateError",
    "UserFetchError",
]
