from pydantic import BaseModel, Field

from .user import User


class RoomState(BaseModel):
    """Last-fetched room metadata"""
    id: int
    name: str | None = None
    topic: str | None = None
    full: bool = False
    open_to_guests: bool = False
    guest_token: str | None = Field(None, alias="active_token_value")
    users: list[User] = Field(default_factory=list)
    loaded: bool = False

    class Config:
        populate_by_name = True
        extra = "ignore"
