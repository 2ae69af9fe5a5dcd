import logging

from circle_friends.schemas.notification import (
    FriendRequestAcceptedData,
    FriendRequestAcceptedNotification,
    FriendRequestData,
    FriendRequestNotification,
    NotificationCreate,
    NotificationOut,
)
from circle_friends.schemas.user import UserProfile
from circle_friends.store.base import NotificationStore, StoreError

logger = logging.getLogger(__name__)


def friend_request_notification(recipient_id: str, sender: UserProfile) -> FriendRequestNotification:
    name = sender.display_name
    return FriendRequestNotification(
        user_id=recipient_id,
        title="Friend Request",
        body=f"{name} wants to be your friend",
        data=FriendRequestData(sender_id=sender.id, sender_name=name, sender_username=sender.username),
    )


def friend_request_accepted_notification(
    recipient_id: str, accepter: UserProfile
) -> FriendRequestAcceptedNotification:
    name = accepter.display_name
    return FriendRequestAcceptedNotification(
        user_id=recipient_id,
        title="Friend Request Accepted",
        body=f"{name} accepted your friend request",
        data=FriendRequestAcceptedData(accepter_id=accepter.id, accepter_name=name),
    )


class NotificationDispatcher:
    """Fire-and-forget notification inserts."""

    def __init__(self, store: NotificationStore):
        self.store = store

    async def dispatch(self, notification: NotificationCreate) -> None:
        try:
            created = await self.store.insert_notification(notification)
        except StoreError as e:
            logger.error(
                f"dispatch: failed to create {notification.type} notification for {notification.user_id}: {e}"
            )
            return
        logger.info(f"dispatch: created {created.type} notification {created.id} for {created.user_id}")


class NotificationService:
    def __init__(self, store: NotificationStore):
        self.store = store

    async def get_notifications(self, user_id: str, limit: int = 50) -> list[NotificationOut]:
        return await self.store.list_notifications(user_id, limit)

    async def get_unread_count(self, user_id: str) -> int:
        return await self.store.count_unread(user_id)

    async def mark_as_read(self, user_id: str, notification_id: int) -> bool:
        return await self.store.mark_read(user_id, notification_id)

    async def mark_all_as_read(self, user_id: str) -> int:
        updated = await self.store.mark_all_read(user_id)
        logger.info(f"Marked {updated} notifications as read for user {user_id}.")
        return updated

    async def delete_notification(self, user_id: str, notification_id: int) -> bool:
        return await self.store.delete_notification(user_id, notification_id)
