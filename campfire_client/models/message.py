from pydantic import BaseModel
from datetime import datetime

from .user import User


class Message(BaseModel):
    """A room message with its user expanded and timestamp parsed"""
    id: int
    body: str | None = None
    type: str
    room_id: int | None = None
    created_at: datetime
    user: User | None = None  # unset for system messages
    starred: bool | None = None

    class Config:
        extra = "allow"
