import logging

from circle_friends.schemas.friendship import EdgeStatus, FriendshipStatus
from circle_friends.store.base import RelationshipStore

logger = logging.getLogger(__name__)


async def get_friendship_status(
    store: RelationshipStore, user_id: str | None, other_user_id: str
) -> FriendshipStatus:
    """Relationship between `user_id` and `other_user_id` as seen by `user_id`.

    Friends requires an active edge in both directions; a single active edge
    (e.g. a half-applied accept) is not enough. Read errors resolve to NONE so
    a failure never reports a friendship that may not exist.
    """
    if not user_id or not other_user_id:
        return FriendshipStatus.NONE

    try:
        outgoing = await store.get_edge(user_id, other_user_id)
        incoming = await store.get_edge(other_user_id, user_id)
    except Exception as e:  # any read failure resolves to NONE
        logger.warning(f"get_friendship_status: read failed for {user_id} -> {other_user_id}: {e}")
        return FriendshipStatus.NONE

    outgoing_status = outgoing.status if outgoing else None
    incoming_status = incoming.status if incoming else None

    if outgoing_status == EdgeStatus.ACTIVE and incoming_status == EdgeStatus.ACTIVE:
        return FriendshipStatus.FRIENDS
    if outgoing_status == EdgeStatus.PENDING:
        return FriendshipStatus.PENDING_SENT
    if incoming_status == EdgeStatus.PENDING:
        return FriendshipStatus.PENDING_RECEIVED
    return FriendshipStatus.NONE
