from pydantic import BaseModel
from datetime import datetime


class Upload(BaseModel):
    """A file uploaded to a room"""
    id: int
    name: str | None = None
    byte_size: int | None = None
    content_type: str | None = None
    full_url: str | None = None
    room_id: int | None = None
    user_id: int | None = None
    created_at: datetime | None = None

    class Config:
        extra = "allow"
