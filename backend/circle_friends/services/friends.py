import logging

from circle_friends.schemas.friendship import EdgeStatus, Friend, FriendshipEdge
from circle_friends.schemas.user import UserProfile
from circle_friends.store.base import RelationshipStore

logger = logging.getLogger(__name__)


def _to_friend(friend_id: str, profile: UserProfile | None, edge: FriendshipEdge) -> Friend:
    return Friend(
        id=friend_id,
        name=(profile.name if profile else None) or "Unknown",
        username=profile.handle if profile else "",
        image_uri=(profile.image_uri if profile else None) or "",
        bio=(profile.bio if profile else None) or "",
        friendship_id=edge.id,
        friended_at=edge.created_at,
    )


class FriendsService:
    """Established friendships and blocks. Store errors propagate."""

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def get_user_friends(self, user_id: str) -> list[Friend]:
        """Everyone joined to `user_id` by an active edge in either direction.

        One active edge is enough here, so a half-applied accept already lists
        the other user while `get_friendship_status` only reports `friends`
        once both edges are active.
        """
        as_user = await self.store.list_edges(user_id=user_id, status=EdgeStatus.ACTIVE)
        as_friend = await self.store.list_edges(friend_id=user_id, status=EdgeStatus.ACTIVE)

        # Edges in either direction count; first one seen wins.
        edges: dict[str, FriendshipEdge] = {}
        for e in as_user:
            edges.setdefault(e.friend_id, e)
        for e in as_friend:
            edges.setdefault(e.user_id, e)

        if not edges:
            return []

        profiles = {p.id: p for p in await self.store.get_profiles(edges.keys())}
        friends = [_to_friend(fid, profiles.get(fid), e) for fid, e in edges.items()]
        friends.sort(key=lambda f: (f.friended_at is not None, f.friended_at), reverse=True)
        logger.debug(f"get_user_friends: {len(friends)} friends for {user_id}")
        return friends

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        await self.store.delete_edges_between(user_id, friend_id)
        logger.info(f"remove_friend: {user_id} <-> {friend_id}")

    async def block_user(self, user_id: str, target_id: str) -> None:
        await self.store.block_user(user_id, target_id)
        logger.info(f"block_user: {user_id} blocked {target_id}")

    async def unblock_user(self, user_id: str, target_id: str) -> bool:
        return await self.store.delete_edge(user_id, target_id, EdgeStatus.BLOCKED)

    async def get_mutual_friends(self, user_id: str, other_user_id: str) -> list[Friend]:
        mine = await self.get_user_friends(user_id)
        theirs = {f.id for f in await self.get_user_friends(other_user_id)}
        return [f for f in mine if f.id in theirs]

    async def search_potential_friends(self, user_id: str, query: str, limit: int = 20) -> list[UserProfile]:
        query = (query or "").strip()
        if not query:
            return []
        friend_ids = {f.id for f in await self.get_user_friends(user_id)}
        return await self.store.search_profiles(query, exclude_ids=friend_ids | {user_id}, limit=limit)
