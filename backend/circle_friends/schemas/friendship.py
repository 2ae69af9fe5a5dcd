import enum
from datetime import datetime

from pydantic import BaseModel


class EdgeStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    BLOCKED = "blocked"


class FriendshipStatus(str, enum.Enum):
    FRIENDS = "friends"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    NONE = "none"


class FriendshipEdge(BaseModel):
    id: int
    user_id: str
    friend_id: str
    status: EdgeStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class FriendRequest(BaseModel):
    """A pending edge seen from one side, with the other user's public profile."""

    id: int
    user_id: str
    friend_id: str
    created_at: datetime | None = None
    counterpart_id: str
    name: str | None
    username: str | None
    image_uri: str | None


class Friend(BaseModel):
    id: str
    name: str
    username: str
    image_uri: str
    bio: str
    friendship_id: int
    friended_at: datetime | None = None
