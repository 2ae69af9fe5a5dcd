"""Friend request lifecycle: send, accept, reject, cancel.

Every operation takes the caller's id explicitly and reports a boolean.
Notifications are best-effort and never change an operation's result.
"""
from __future__ import annotations

import asyncio
import logging

from circle_friends.core.settings import settings
from circle_friends.schemas.friendship import EdgeStatus, FriendRequest, FriendshipEdge, FriendshipStatus
from circle_friends.services.friendship_status import get_friendship_status
from circle_friends.services.notifications import (
    NotificationDispatcher,
    friend_request_accepted_notification,
    friend_request_notification,
)
from circle_friends.services.retry import Sleep, exponential_backoff, retry_until
from circle_friends.store.base import RelationshipStore, StoreError

logger = logging.getLogger(__name__)


class FriendRequestService:
    def __init__(
        self,
        store: RelationshipStore,
        notifier: NotificationDispatcher,
        *,
        sleep: Sleep = asyncio.sleep,
        confirm_attempts: int | None = None,
        confirm_base_delay: float | None = None,
        final_check_delay: float | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.sleep = sleep
        self.confirm_attempts = (
            confirm_attempts if confirm_attempts is not None else settings.ACCEPT_CONFIRM_MAX_ATTEMPTS
        )
        self.confirm_base_delay = (
            confirm_base_delay
            if confirm_base_delay is not None
            else settings.ACCEPT_CONFIRM_BASE_DELAY_MS / 1000
        )
        self.final_check_delay = (
            final_check_delay
            if final_check_delay is not None
            else settings.ACCEPT_FINAL_CHECK_DELAY_MS / 1000
        )

    async def send_friend_request(self, user_id: str | None, target_id: str) -> bool:
        if not user_id:
            logger.error("send_friend_request: user not authenticated")
            return False
        if not target_id or target_id == user_id:
            logger.warning(f"send_friend_request: invalid target {target_id!r} for {user_id}")
            return False

        try:
            target = await self.store.get_profile(target_id)
            if target is None:
                logger.warning(f"send_friend_request: target {target_id} not found")
                return False

            blocked_by_target = await self.store.get_edge(target_id, user_id, EdgeStatus.BLOCKED)
            if blocked_by_target:
                logger.info(f"send_friend_request: {target_id} has blocked {user_id}")
                return False

            existing = await self.store.get_edge(user_id, target_id)
            if existing and existing.status in (EdgeStatus.ACTIVE, EdgeStatus.PENDING):
                # Already friends or already requested.
                return True

            await self.store.upsert_edge(user_id, target_id, EdgeStatus.PENDING)
        except StoreError as e:
            logger.error(f"send_friend_request: {user_id} -> {target_id} failed: {e}")
            return False

        sender = await self._profile_for_notification(user_id)
        if sender:
            await self.notifier.dispatch(friend_request_notification(target_id, sender))
        return True

    async def accept_friend_request(self, user_id: str | None, requester_id: str) -> bool:
        if not user_id:
            logger.error("accept_friend_request: user not authenticated")
            return False

        logger.info(f"accept_friend_request: {requester_id} -> {user_id}")
        try:
            accepted = await self.store.accept_friend_request(requester_id, user_id)
        except StoreError as e:
            logger.error(f"accept_friend_request: store call failed: {e}")
            return False
        if not accepted:
            logger.error(f"accept_friend_request: no acceptable request from {requester_id} to {user_id}")
            return False

        await self._wait_for_friendship(user_id, requester_id)

        accepter = await self._profile_for_notification(user_id)
        if accepter:
            await self.notifier.dispatch(friend_request_accepted_notification(requester_id, accepter))
        return True

    async def reject_friend_request(self, user_id: str | None, requester_id: str) -> bool:
        if not user_id:
            logger.error("reject_friend_request: user not authenticated")
            return False
        return await self._reject(requester_id, user_id)

    async def cancel_friend_request(self, user_id: str | None, friend_id: str) -> bool:
        if not user_id:
            logger.error("cancel_friend_request: user not authenticated")
            return False
        return await self._reject(user_id, friend_id)

    async def get_pending_requests(self, user_id: str | None) -> list[FriendRequest]:
        """Incoming requests, newest first."""
        if not user_id:
            return []
        try:
            edges = await self.store.list_edges(friend_id=user_id, status=EdgeStatus.PENDING)
            return await self._with_profiles(edges, incoming=True)
        except StoreError as e:
            logger.error(f"get_pending_requests: {e}")
            return []

    async def get_sent_requests(self, user_id: str | None) -> list[FriendRequest]:
        """Outgoing requests, newest first."""
        if not user_id:
            return []
        try:
            edges = await self.store.list_edges(user_id=user_id, status=EdgeStatus.PENDING)
            return await self._with_profiles(edges, incoming=False)
        except StoreError as e:
            logger.error(f"get_sent_requests: {e}")
            return []

    async def _reject(self, requester_id: str, target_id: str) -> bool:
        try:
            return await self.store.reject_friend_request(requester_id, target_id) is True
        except StoreError as e:
            logger.error(f"reject_friend_request: {requester_id} -> {target_id} failed: {e}")
            return False

    async def _wait_for_friendship(self, user_id: str, other_id: str) -> bool:
        async def probe():
            return await get_friendship_status(self.store, user_id, other_id)

        def is_friends(status):
            return status == FriendshipStatus.FRIENDS

        result = await retry_until(
            probe,
            is_friends,
            max_attempts=self.confirm_attempts,
            backoff=exponential_backoff(self.confirm_base_delay),
            sleep=self.sleep,
        )
        if result.succeeded:
            logger.info(f"Friendship {user_id} <-> {other_id} confirmed after {result.attempts} attempt(s)")
            return True

        await self.sleep(self.final_check_delay)
        if is_friends(await probe()):
            logger.info(f"Friendship {user_id} <-> {other_id} confirmed on final check")
            return True

        logger.warning(
            f"Friendship {user_id} <-> {other_id} not visible after {result.attempts} attempts; continuing"
        )
        return False

    async def _profile_for_notification(self, user_id: str):
        try:
            return await self.store.get_profile(user_id)
        except StoreError as e:
            logger.error(f"Could not load profile {user_id} for notification: {e}")
            return None

    async def _with_profiles(self, edges: list[FriendshipEdge], *, incoming: bool) -> list[FriendRequest]:
        ids = [e.user_id if incoming else e.friend_id for e in edges]
        profiles = {p.id: p for p in await self.store.get_profiles(ids)}

        out: list[FriendRequest] = []
        for edge, other_id in zip(edges, ids):
            p = profiles.get(other_id)
            out.append(
                FriendRequest(
                    id=edge.id,
                    user_id=edge.user_id,
                    friend_id=edge.friend_id,
                    created_at=edge.created_at,
                    counterpart_id=other_id,
                    name=p.name if p else None,
                    username=p.username if p else None,
                    image_uri=p.image_uri if p else None,
                )
            )
        return out
