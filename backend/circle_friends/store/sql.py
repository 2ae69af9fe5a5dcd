from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from circle_friends.models.friendship import Friendship
from circle_friends.models.notification import Notification
from circle_friends.models.user import User
from circle_friends.schemas.friendship import EdgeStatus, FriendshipEdge
from circle_friends.schemas.notification import NotificationCreate, NotificationOut
from circle_friends.schemas.user import UserProfile
from circle_friends.store.base import NotificationStore, RelationshipStore, StoreError

logger = logging.getLogger(__name__)


class SqlStore(RelationshipStore, NotificationStore):
    """SQLAlchemy-backed store.

    Blocking session work runs in the threadpool; one session is only ever
    used by one request at a time.
    """

    def __init__(self, db: Session):
        self.db = db

    async def _run(self, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"{fn.__name__} failed: {e}")
            self.db.rollback()
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Friendship edges
    # ------------------------------------------------------------------

    def _edge_query(self, user_id: str, friend_id: str, status: EdgeStatus | None = None):
        q = select(Friendship).where(
            Friendship.user_id == user_id,
            Friendship.friend_id == friend_id,
        )
        if status is not None:
            q = q.where(Friendship.status == status.value)
        return q

    def _get_edge(self, user_id, friend_id, status):
        row = self.db.execute(self._edge_query(user_id, friend_id, status)).scalars().one_or_none()
        return FriendshipEdge.model_validate(row) if row else None

    async def get_edge(self, user_id, friend_id, status=None):
        return await self._run(self._get_edge, user_id, friend_id, status)

    def _list_edges(self, user_id, friend_id, status):
        q = select(Friendship)
        if user_id is not None:
            q = q.where(Friendship.user_id == user_id)
        if friend_id is not None:
            q = q.where(Friendship.friend_id == friend_id)
        if status is not None:
            q = q.where(Friendship.status == status.value)
        rows = self.db.execute(
            q.order_by(Friendship.created_at.desc(), Friendship.id.desc())
        ).scalars().all()
        return [FriendshipEdge.model_validate(r) for r in rows]

    async def list_edges(self, *, user_id=None, friend_id=None, status=None):
        return await self._run(self._list_edges, user_id, friend_id, status)

    def _insert(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return postgresql.insert
        return sqlite.insert

    def _upsert_edge(self, user_id, friend_id, status):
        stmt = self._insert()(Friendship).values(
            user_id=user_id, friend_id=friend_id, status=status.value
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "friend_id"],
            set_={"status": stmt.excluded.status, "updated_at": func.now()},
        )
        self.db.execute(stmt)
        self.db.commit()

    async def upsert_edge(self, user_id, friend_id, status):
        await self._run(self._upsert_edge, user_id, friend_id, status)

    def _delete_edge(self, user_id, friend_id, status):
        q = delete(Friendship).where(
            Friendship.user_id == user_id,
            Friendship.friend_id == friend_id,
        )
        if status is not None:
            q = q.where(Friendship.status == status.value)
        res = self.db.execute(q)
        self.db.commit()
        return res.rowcount > 0

    async def delete_edge(self, user_id, friend_id, status=None):
        return await self._run(self._delete_edge, user_id, friend_id, status)

    def _between(self, user_id, other_user_id):
        return delete(Friendship).where(
            ((Friendship.user_id == user_id) & (Friendship.friend_id == other_user_id))
            | ((Friendship.user_id == other_user_id) & (Friendship.friend_id == user_id))
        )

    def _delete_edges_between(self, user_id, other_user_id):
        self.db.execute(self._between(user_id, other_user_id))
        self.db.commit()

    async def delete_edges_between(self, user_id, other_user_id):
        await self._run(self._delete_edges_between, user_id, other_user_id)

    def _accept_friend_request(self, requester_id, accepter_id):
        edge = self.db.execute(
            self._edge_query(requester_id, accepter_id).with_for_update()
        ).scalars().one_or_none()
        if edge is None or edge.status != EdgeStatus.PENDING.value:
            self.db.rollback()
            return False

        mirror = self.db.execute(
            self._edge_query(accepter_id, requester_id).with_for_update()
        ).scalars().one_or_none()
        if mirror is not None and mirror.status == EdgeStatus.BLOCKED.value:
            self.db.rollback()
            return False

        edge.status = EdgeStatus.ACTIVE.value
        if mirror is None:
            self.db.add(
                Friendship(user_id=accepter_id, friend_id=requester_id, status=EdgeStatus.ACTIVE.value)
            )
        else:
            mirror.status = EdgeStatus.ACTIVE.value

        self.db.commit()
        return True

    async def accept_friend_request(self, requester_id, accepter_id):
        return await self._run(self._accept_friend_request, requester_id, accepter_id)

    def _block_user(self, user_id, target_id):
        # Both statements commit together or not at all.
        self.db.execute(self._between(user_id, target_id))
        self.db.add(Friendship(user_id=user_id, friend_id=target_id, status=EdgeStatus.BLOCKED.value))
        self.db.commit()

    async def block_user(self, user_id, target_id):
        await self._run(self._block_user, user_id, target_id)

    async def reject_friend_request(self, requester_id, target_id):
        return await self._run(self._delete_edge, requester_id, target_id, EdgeStatus.PENDING)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def _get_profile(self, user_id):
        user = self.db.get(User, user_id)
        return UserProfile.model_validate(user) if user else None

    async def get_profile(self, user_id):
        return await self._run(self._get_profile, user_id)

    def _get_profiles(self, user_ids):
        if not user_ids:
            return []
        rows = self.db.execute(select(User).where(User.id.in_(user_ids))).scalars().all()
        return [UserProfile.model_validate(u) for u in rows]

    async def get_profiles(self, user_ids: Iterable[str]):
        return await self._run(self._get_profiles, list(user_ids))

    def _search_profiles(self, query, exclude_ids, limit):
        pattern = f"%{query}%"
        rows = self.db.execute(
            select(User)
            .where(User.id.not_in(exclude_ids))
            .where(or_(User.name.ilike(pattern), User.username.ilike(pattern)))
            .order_by(User.name)
            .limit(limit)
        ).scalars().all()
        return [UserProfile.model_validate(u) for u in rows]

    async def search_profiles(self, query, *, exclude_ids, limit):
        return await self._run(self._search_profiles, query, list(exclude_ids), limit)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _insert_notification(self, notification: NotificationCreate):
        row = Notification(**notification.model_dump())
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return NotificationOut.model_validate(row)

    async def insert_notification(self, notification):
        return await self._run(self._insert_notification, notification)

    def _list_notifications(self, user_id, limit):
        rows = self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).scalars().all()
        return [NotificationOut.model_validate(r) for r in rows]

    async def list_notifications(self, user_id, limit):
        return await self._run(self._list_notifications, user_id, limit)

    def _count_unread(self, user_id):
        return self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        ).scalar_one()

    async def count_unread(self, user_id):
        return await self._run(self._count_unread, user_id)

    def _mark_read(self, user_id, notification_id):
        res = self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
        )
        self.db.commit()
        return res.rowcount > 0

    async def mark_read(self, user_id, notification_id):
        return await self._run(self._mark_read, user_id, notification_id)

    def _mark_all_read(self, user_id):
        res = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        self.db.commit()
        return res.rowcount

    async def mark_all_read(self, user_id):
        return await self._run(self._mark_all_read, user_id)

    def _delete_notification(self, user_id, notification_id):
        res = self.db.execute(
            delete(Notification).where(
                Notification.id == notification_id, Notification.user_id == user_id
            )
        )
        self.db.commit()
        return res.rowcount > 0

    async def delete_notification(self, user_id, notification_id):
        return await self._run(self._delete_notification, user_id, notification_id)
