import asyncio

from circle_friends.schemas.friendship import EdgeStatus, FriendshipStatus
from circle_friends.services.friendship_status import get_friendship_status


def _status(store, me, other):
    return asyncio.run(get_friendship_status(store, me, other))


def _edge(store, a, b, status):
    asyncio.run(store.upsert_edge(a, b, status))


def test_no_edges_is_none(store):
    assert _status(store, "alice", "bob") == FriendshipStatus.NONE


def test_both_active_edges_are_friends(store):
    _edge(store, "alice", "bob", EdgeStatus.ACTIVE)
    _edge(store, "bob", "alice", EdgeStatus.ACTIVE)

    assert _status(store, "alice", "bob") == FriendshipStatus.FRIENDS
    assert _status(store, "bob", "alice") == FriendshipStatus.FRIENDS


def test_single_active_edge_is_not_friends(store):
    _edge(store, "alice", "bob", EdgeStatus.ACTIVE)

    assert _status(store, "alice", "bob") == FriendshipStatus.NONE
    assert _status(store, "bob", "alice") == FriendshipStatus.NONE


def test_single_active_edge_with_pending_mirror(store):
    # Half-applied accept: bob's side still pending.
    _edge(store, "alice", "bob", EdgeStatus.ACTIVE)
    _edge(store, "bob", "alice", EdgeStatus.PENDING)

    assert _status(store, "alice", "bob") == FriendshipStatus.PENDING_RECEIVED
    assert _status(store, "bob", "alice") == FriendshipStatus.PENDING_SENT


def test_pending_edge_directions(store):
    _edge(store, "alice", "bob", EdgeStatus.PENDING)

    assert _status(store, "alice", "bob") == FriendshipStatus.PENDING_SENT
    assert _status(store, "bob", "alice") == FriendshipStatus.PENDING_RECEIVED


def test_sent_wins_over_received(store):
    _edge(store, "alice", "bob", EdgeStatus.PENDING)
    _edge(store, "bob", "alice", EdgeStatus.PENDING)

    assert _status(store, "alice", "bob") == FriendshipStatus.PENDING_SENT


def test_blocked_edge_is_none(store):
    _edge(store, "alice", "bob", EdgeStatus.BLOCKED)

    assert _status(store, "alice", "bob") == FriendshipStatus.NONE
    assert _status(store, "bob", "alice") == FriendshipStatus.NONE


def test_read_error_fails_open_to_none(store):
    _edge(store, "alice", "bob", EdgeStatus.ACTIVE)
    _edge(store, "bob", "alice", EdgeStatus.ACTIVE)
    store.fail_reads = True

    assert _status(store, "alice", "bob") == FriendshipStatus.NONE


def test_unexpected_exception_fails_open_to_none(store):
    async def boom(*args, **kwargs):
        raise RuntimeError("connection reset")

    store.get_edge = boom

    assert _status(store, "alice", "bob") == FriendshipStatus.NONE


def test_missing_identity_is_none(store):
    _edge(store, "alice", "bob", EdgeStatus.PENDING)

    assert _status(store, None, "bob") == FriendshipStatus.NONE
    assert _status(store, "", "bob") == FriendshipStatus.NONE
