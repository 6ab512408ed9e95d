"""
Domain models for the Campfire client.
These Pydantic models map to the records returned by the Campfire API.
"""

from .user import User
from .message import Message
from .room import RoomState
from .upload import Upload

__all__ = [
    "User",
    "Message",
    "RoomState",
    "Upload",
]
