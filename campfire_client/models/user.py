from pydantic import BaseModel, Field
from datetime import datetime


class User(BaseModel):
    """A Campfire user as seen in room rosters and messages"""
    id: int
    name: str | None = None
    email: str | None = Field(None, alias="email_address")
    is_admin: bool = Field(False, alias="admin")
    created_at: datetime | None = None
    type: str | None = None  # 'Member' or 'Guest'
    avatar_url: str | None = None

    class Config:
        populate_by_name = True
        extra = "allow"
