from __future__ import annotations

import asyncio
from collections.abc import Generator
import json
import time
import urllib.request

from fastapi import Depends, Header, HTTPException
from jose import jwt
from jose.exceptions import JWTError
from sqlalchemy.orm import Session

from circle_friends.core.settings import settings
from circle_friends.db.session import SessionLocal
from circle_friends.models.user import User
from circle_friends.services.friend_requests import FriendRequestService
from circle_friends.services.friends import FriendsService
from circle_friends.services.notifications import NotificationDispatcher, NotificationService
from circle_friends.services.retry import Sleep
from circle_friends.store.sql import SqlStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_user(db: Session, user_id: str) -> User:
    user_id = (user_id or "").strip()
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    db.flush()
    return user


_JWKS_CACHE: dict | None = None
_JWKS_CACHE_UNTIL: float = 0


def _get_jwks() -> dict:
    global _JWKS_CACHE, _JWKS_CACHE_UNTIL

    if _JWKS_CACHE and time.time() < _JWKS_CACHE_UNTIL:
        return _JWKS_CACHE

    if not settings.AUTH0_DOMAIN:
        raise RuntimeError("AUTH0_DOMAIN not configured")

    url = f"https://{settings.AUTH0_DOMAIN}/.well-known/jwks.json"
    with urllib.request.urlopen(url, timeout=5) as resp:
        data = json.loads(resp.read().decode("utf-8"))

    _JWKS_CACHE = data
    _JWKS_CACHE_UNTIL = time.time() + 3600
    return data


def get_current_user_id(
    authorization: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> str:
    # Dev fallback until Auth0 is configured.
    auth0_configured = bool(settings.AUTH0_DOMAIN and settings.AUTH0_AUDIENCE)
    if not auth0_configured:
        return x_user_id or "dev-user"

    # Auth0 is configured: require a real Bearer token.
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    token = parts[1]

    try:
        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")
        jwks = _get_jwks()
        key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
        if not key:
            raise HTTPException(status_code=401, detail="Unable to find signing key")

        payload = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=settings.AUTH0_AUDIENCE,
            issuer=f"https://{settings.AUTH0_DOMAIN}/",
        )
    except HTTPException:
        raise
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub")
    return str(sub)


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)


def get_sleep() -> Sleep:
    return asyncio.sleep


def get_friend_request_service(
    store: SqlStore = Depends(get_store),
    sleep: Sleep = Depends(get_sleep),
) -> FriendRequestService:
    return FriendRequestService(store, NotificationDispatcher(store), sleep=sleep)


def get_friends_service(store: SqlStore = Depends(get_store)) -> FriendsService:
    return FriendsService(store)


def get_notification_service(store: SqlStore = Depends(get_store)) -> NotificationService:
    return NotificationService(store)


def get_ensured_user_id(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> str:
    """Current user id, creating the users row on first sight."""
    user_id = (user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user id")

    ensure_user(db, user_id)
    db.commit()
    return user_id
