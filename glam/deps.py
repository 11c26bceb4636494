# glam/deps.py

from datetime import date

from fastapi import Depends, HTTPException

from .auth import get_current_user
from .cache import QueryCache, query_cache


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_current_artist(current_user: dict = Depends(get_current_user)) -> dict:
    require_role(current_user, "artist")
    if current_user["artist_id"] is None:
        raise HTTPException(status_code=409, detail="Artist profile not set up")
    return current_user


def get_cache() -> QueryCache:
    return query_cache


def get_today() -> date:
    return date.today()
