# glam/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from glam.db import get_session
from glam.models import User, Artist
from glam.schemas import SignupRole, UserCreate, UserPublic
from glam.auth import get_current_user, hash_password, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # 1) Check if email already exists (emails are stored lowercased)
    email = normalize_email(user.email)
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Create user in DB
    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        role=user.role.value,
        full_name=user.full_name,
    )
    session.add(db_user)
    session.flush()  # fills db_user.id

    # 3) Artists get their profile row at signup
    artist_id = None
    if user.role == SignupRole.artist:
        artist = Artist(user_id=db_user.id, display_name=user.full_name)
        session.add(artist)
        artist_id = artist.id

    session.commit()
    session.refresh(db_user)
    logger.info("Created %s account %s", db_user.role, db_user.id)

    # 4) Return public user
    return {
        "id": db_user.id,
        "email": db_user.email,
        "role": db_user.role,
        "full_name": db_user.full_name,
        "artist_id": artist_id,
    }
