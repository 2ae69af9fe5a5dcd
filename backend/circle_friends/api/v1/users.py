from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from circle_friends.api.deps import ensure_user, get_db, get_ensured_user_id, get_friends_service
from circle_friends.schemas.user import UserProfile
from circle_friends.services.friends import FriendsService

router = APIRouter()


class UserMeUpdateIn(BaseModel):
    name: str | None = None
    username: str | None = None
    image_uri: str | None = None
    bio: str | None = None


@router.get("/users/me", response_model=UserProfile)
def upsert_me(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_ensured_user_id),
):
    user = ensure_user(db, user_id)
    db.commit()
    db.refresh(user)
    return user


@router.patch("/users/me", response_model=UserProfile)
def update_me(
    payload: UserMeUpdateIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_ensured_user_id),
):
    user = ensure_user(db, user_id)

    if payload.name is not None:
        v = (payload.name or "").strip()
        user.name = v or None

    if payload.username is not None:
        v = (payload.username or "").strip().lower()
        user.username = v or None

    if payload.image_uri is not None:
        v = (payload.image_uri or "").strip()
        user.image_uri = v or None

    if payload.bio is not None:
        v = (payload.bio or "").strip()
        user.bio = v or None

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="username already in use")

    db.refresh(user)
    return user


@router.get("/users/search", response_model=list[UserProfile])
async def search_users(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=50),
    user_id: str = Depends(get_ensured_user_id),
    friends: FriendsService = Depends(get_friends_service),
):
    return await friends.search_potential_friends(user_id, q, limit=limit)
