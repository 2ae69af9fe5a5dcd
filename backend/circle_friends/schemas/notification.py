from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class FriendRequestData(BaseModel):
    sender_id: str
    sender_name: str
    sender_username: str | None = None


class FriendRequestAcceptedData(BaseModel):
    accepter_id: str
    accepter_name: str


class NotificationBase(BaseModel):
    user_id: str  # recipient
    title: str
    body: str
    read: bool = False


class FriendRequestNotification(NotificationBase):
    type: Literal["friend_request"] = "friend_request"
    data: FriendRequestData


class FriendRequestAcceptedNotification(NotificationBase):
    type: Literal["friend_request_accepted"] = "friend_request_accepted"
    data: FriendRequestAcceptedData


# Payload shape is selected by `type`.
NotificationCreate = Annotated[
    Union[FriendRequestNotification, FriendRequestAcceptedNotification],
    Field(discriminator="type"),
]


class NotificationOut(BaseModel):
    id: int
    user_id: str
    type: str
    title: str
    body: str
    data: dict
    read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True
