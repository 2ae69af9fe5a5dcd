from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from circle_friends.schemas.friendship import EdgeStatus, FriendshipEdge
from circle_friends.schemas.notification import NotificationOut
from circle_friends.schemas.user import UserProfile
from circle_friends.services.friend_requests import FriendRequestService
from circle_friends.services.notifications import NotificationDispatcher
from circle_friends.store.base import NotificationStore, RelationshipStore, StoreError


class InMemoryStore(RelationshipStore, NotificationStore):
    """Dict-backed store.

    `accept_lag_reads` makes the next N `get_edge` calls after an accept see
    the edges as they were before it, like a lagging read replica.
    """

    def __init__(self):
        self.users: dict[str, UserProfile] = {}
        self.edges: dict[tuple[str, str], FriendshipEdge] = {}
        self.notifications: list[NotificationOut] = []
        self.edge_reads = 0
        self.accept_lag_reads = 0
        self.fail_reads = False
        self.fail_writes = False
        self.fail_notifications = False
        self.accept_result: bool | None = None
        self._stale: dict | None = None
        self._stale_remaining = 0
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def add_user(self, user_id, name=None, username=None):
        self.users[user_id] = UserProfile(id=user_id, name=name, username=username)
        return self.users[user_id]

    def _now(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check_write(self):
        if self.fail_writes:
            raise StoreError("write failed")

    async def get_edge(self, user_id, friend_id, status=None):
        self.edge_reads += 1
        if self.fail_reads:
            raise StoreError("read failed")
        edges = self.edges
        if self._stale_remaining > 0:
            self._stale_remaining -= 1
            edges = self._stale
        edge = edges.get((user_id, friend_id))
        if edge is None or (status is not None and edge.status != status):
            return None
        return edge

    async def list_edges(self, *, user_id=None, friend_id=None, status=None):
        if self.fail_reads:
            raise StoreError("read failed")
        out = [
            e
            for e in self.edges.values()
            if (user_id is None or e.user_id == user_id)
            and (friend_id is None or e.friend_id == friend_id)
            and (status is None or e.status == status)
        ]
        return sorted(out, key=lambda e: (e.created_at, e.id), reverse=True)

    async def upsert_edge(self, user_id, friend_id, status):
        self._check_write()
        now = self._now()
        existing = self.edges.get((user_id, friend_id))
        if existing:
            self.edges[(user_id, friend_id)] = existing.model_copy(update={"status": status, "updated_at": now})
        else:
            self.edges[(user_id, friend_id)] = FriendshipEdge(
                id=next(self._ids),
                user_id=user_id,
                friend_id=friend_id,
                status=status,
                created_at=now,
                updated_at=now,
            )

    async def delete_edge(self, user_id, friend_id, status=None):
        self._check_write()
        edge = self.edges.get((user_id, friend_id))
        if edge is None or (status is not None and edge.status != status):
            return False
        del self.edges[(user_id, friend_id)]
        return True

    async def delete_edges_between(self, user_id, other_user_id):
        self._check_write()
        self.edges.pop((user_id, other_user_id), None)
        self.edges.pop((other_user_id, user_id), None)

    async def block_user(self, user_id, target_id):
        self._check_write()
        await self.delete_edges_between(user_id, target_id)
        await self.upsert_edge(user_id, target_id, EdgeStatus.BLOCKED)

    async def accept_friend_request(self, requester_id, accepter_id):
        self._check_write()
        if self.accept_result is not None:
            return self.accept_result
        edge = self.edges.get((requester_id, accepter_id))
        if edge is None or edge.status != EdgeStatus.PENDING:
            return False
        self._stale = dict(self.edges)
        self._stale_remaining = self.accept_lag_reads
        await self.upsert_edge(requester_id, accepter_id, EdgeStatus.ACTIVE)
        await self.upsert_edge(accepter_id, requester_id, EdgeStatus.ACTIVE)
        return True

    async def reject_friend_request(self, requester_id, target_id):
        return await self.delete_edge(requester_id, target_id, EdgeStatus.PENDING)

    async def get_profile(self, user_id):
        if self.fail_reads:
            raise StoreError("read failed")
        return self.users.get(user_id)

    async def get_profiles(self, user_ids):
        return [self.users[i] for i in user_ids if i in self.users]

    async def search_profiles(self, query, *, exclude_ids, limit):
        q = query.lower()
        exclude_ids = set(exclude_ids)
        hits = [
            u
            for u in self.users.values()
            if u.id not in exclude_ids and (q in (u.name or "").lower() or q in (u.username or "").lower())
        ]
        return hits[:limit]

    async def insert_notification(self, notification):
        if self.fail_notifications:
            raise StoreError("notification insert failed")
        row = NotificationOut(id=next(self._ids), created_at=self._now(), **notification.model_dump())
        self.notifications.append(row)
        return row

    async def list_notifications(self, user_id, limit):
        rows = [n for n in self.notifications if n.user_id == user_id]
        return list(reversed(rows))[:limit]

    async def count_unread(self, user_id):
        return sum(1 for n in self.notifications if n.user_id == user_id and not n.read)

    async def mark_read(self, user_id, notification_id):
        for i, n in enumerate(self.notifications):
            if n.id == notification_id and n.user_id == user_id:
                self.notifications[i] = n.model_copy(update={"read": True})
                return True
        return False

    async def mark_all_read(self, user_id):
        updated = 0
        for i, n in enumerate(self.notifications):
            if n.user_id == user_id and not n.read:
                self.notifications[i] = n.model_copy(update={"read": True})
                updated += 1
        return updated

    async def delete_notification(self, user_id, notification_id):
        before = len(self.notifications)
        self.notifications = [
            n for n in self.notifications if not (n.id == notification_id and n.user_id == user_id)
        ]
        return len(self.notifications) < before


class FakeSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture()
def store():
    s = InMemoryStore()
    s.add_user("alice", name="Alice Smith", username="alice")
    s.add_user("bob", name="Bob Jones", username="bob")
    s.add_user("carol", name="Carol White")
    return s


@pytest.fixture()
def fake_sleep():
    return FakeSleep()


@pytest.fixture()
def service(store, fake_sleep):
    return FriendRequestService(store, NotificationDispatcher(store), sleep=fake_sleep)
