"""Storage boundary for friendships, profiles and notifications.

Services only talk to these interfaces. Reads are not guaranteed to observe
preceding writes immediately, so callers that need confirmation poll.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from circle_friends.schemas.friendship import EdgeStatus, FriendshipEdge
from circle_friends.schemas.notification import NotificationCreate, NotificationOut
from circle_friends.schemas.user import UserProfile


class StoreError(Exception):
    """Raised for any failure talking to the backing store."""


class RelationshipStore(ABC):
    @abstractmethod
    async def get_edge(
        self, user_id: str, friend_id: str, status: EdgeStatus | None = None
    ) -> FriendshipEdge | None: ...

    @abstractmethod
    async def list_edges(
        self,
        *,
        user_id: str | None = None,
        friend_id: str | None = None,
        status: EdgeStatus | None = None,
    ) -> list[FriendshipEdge]:
        """Newest first."""

    @abstractmethod
    async def upsert_edge(self, user_id: str, friend_id: str, status: EdgeStatus) -> None:
        """Insert, or on `(user_id, friend_id)` conflict set status and bump `updated_at`."""

    @abstractmethod
    async def delete_edge(self, user_id: str, friend_id: str, status: EdgeStatus | None = None) -> bool: ...

    @abstractmethod
    async def delete_edges_between(self, user_id: str, other_user_id: str) -> None: ...

    @abstractmethod
    async def accept_friend_request(self, requester_id: str, accepter_id: str) -> bool:
        """Atomically flip the pending `requester -> accepter` edge to active and activate its mirror.

        False, with nothing changed, unless that edge exists and is pending.
        """

    @abstractmethod
    async def block_user(self, user_id: str, target_id: str) -> None:
        """Atomically drop any edges between the pair and leave `user -> target` blocked."""

    @abstractmethod
    async def reject_friend_request(self, requester_id: str, target_id: str) -> bool:
        """Atomically remove the pending `requester -> target` edge."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> UserProfile | None: ...

    @abstractmethod
    async def get_profiles(self, user_ids: Iterable[str]) -> list[UserProfile]: ...

    @abstractmethod
    async def search_profiles(
        self, query: str, *, exclude_ids: Iterable[str], limit: int
    ) -> list[UserProfile]:
        """Name or username matches, skipping `exclude_ids`, at most `limit`."""


class NotificationStore(ABC):
    @abstractmethod
    async def insert_notification(self, notification: NotificationCreate) -> NotificationOut: ...

    @abstractmethod
    async def list_notifications(self, user_id: str, limit: int) -> list[NotificationOut]: ...

    @abstractmethod
    async def count_unread(self, user_id: str) -> int: ...

    @abstractmethod
    async def mark_read(self, user_id: str, notification_id: int) -> bool: ...

    @abstractmethod
    async def mark_all_read(self, user_id: str) -> int: ...

    @abstractmethod
    async def delete_notification(self, user_id: str, notification_id: int) -> bool: ...
