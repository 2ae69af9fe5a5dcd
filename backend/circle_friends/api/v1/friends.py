from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from circle_friends.api.deps import (
    get_ensured_user_id,
    get_friend_request_service,
    get_friends_service,
    get_store,
)
from circle_friends.schemas.friendship import Friend, FriendRequest, FriendshipStatus
from circle_friends.services.friend_requests import FriendRequestService
from circle_friends.services.friends import FriendsService
from circle_friends.services.friendship_status import get_friendship_status
from circle_friends.store.sql import SqlStore

router = APIRouter()


class FriendRequestIn(BaseModel):
    user_id: str


class FriendRequestActionOut(BaseModel):
    ok: bool


class FriendshipStatusOut(BaseModel):
    user_id: str
    status: FriendshipStatus


@router.get("/friends", response_model=list[Friend])
async def list_friends(
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    return await friends.get_user_friends(user_id)


@router.get("/friends/status/{other_id}", response_model=FriendshipStatusOut)
async def friendship_status(
    other_id: str,
    user_id: str = Depends(get_ensured_user_id),
    store: SqlStore = Depends(get_store),
):
    status = await get_friendship_status(store, user_id, other_id)
    return FriendshipStatusOut(user_id=other_id, status=status)


@router.get("/friends/requests", response_model=list[FriendRequest])
async def list_incoming_requests(
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    return await requests.get_pending_requests(user_id)


@router.get("/friends/requests/sent", response_model=list[FriendRequest])
async def list_sent_requests(
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    return await requests.get_sent_requests(user_id)


@router.post("/friends/requests", response_model=FriendRequestActionOut, status_code=201)
async def send_friend_request(
    payload: FriendRequestIn,
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    target_id = (payload.user_id or "").strip()
    if target_id == user_id:
        raise HTTPException(status_code=400, detail="Cannot add yourself")

    if not await requests.send_friend_request(user_id, target_id):
        raise HTTPException(status_code=400, detail="Could not send friend request")
    return FriendRequestActionOut(ok=True)


@router.post("/friends/requests/{requester_id}/accept", response_model=FriendRequestActionOut)
async def accept_friend_request(
    requester_id: str,
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    if not await requests.accept_friend_request(user_id, requester_id):
        raise HTTPException(status_code=400, detail="Could not accept friend request")
    return FriendRequestActionOut(ok=True)


@router.post("/friends/requests/{requester_id}/reject", response_model=FriendRequestActionOut)
async def reject_friend_request(
    requester_id: str,
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    if not await requests.reject_friend_request(user_id, requester_id):
        raise HTTPException(status_code=400, detail="Could not reject friend request")
    return FriendRequestActionOut(ok=True)


@router.delete("/friends/requests/{friend_id}", response_model=FriendRequestActionOut)
async def cancel_friend_request(
    friend_id: str,
    user_id: str = Depends(get_ensured_user_id),
    requests: FriendRequestService = Depends(get_friend_request_service),
):
    if not await requests.cancel_friend_request(user_id, friend_id):
        raise HTTPException(status_code=400, detail="Could not cancel friend request")
    return FriendRequestActionOut(ok=True)


@router.get("/friends/{other_id}/mutual", response_model=list[Friend])
async def list_mutual_friends(
    other_id: str,
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    return await friends.get_mutual_friends(user_id, other_id)


@router.delete("/friends/{friend_id}")
async def remove_friend(
    friend_id: str,
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    current = {f.id for f in await friends.get_user_friends(user_id)}
    if friend_id not in current:
        raise HTTPException(status_code=404, detail="Not friends")

    await friends.remove_friend(user_id, friend_id)
    return {"ok": True}


@router.post("/friends/{target_id}/block")
async def block_user(
    target_id: str,
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    if target_id == user_id:
        raise HTTPException(status_code=400, detail="Cannot block yourself")
    if not await friends.store.get_profile(target_id):
        raise HTTPException(status_code=404, detail="User not found")

    await friends.block_user(user_id, target_id)
    return {"ok": True}


@router.delete("/friends/{target_id}/block")
async def unblock_user(
    target_id: str,
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    if not await friends.unblock_user(user_id, target_id):
        raise HTTPException(status_code=404, detail="User not blocked")
    return {"ok": True}
