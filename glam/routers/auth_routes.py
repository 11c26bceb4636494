# glam/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from glam.db import get_session
from glam.models import User
from glam.schemas import Token
from glam.auth import create_access_token, normalize_email, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # OAuth2 password flow sends the email as "username"
    email = normalize_email(form_data.username)

    user = session.exec(
        select(User).where(User.email == email)
    ).first()
    if user is None or not verify_password(form_data.password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise HTTPException(
            status_code=401,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("Issued token for %s account %s", user.role, user.id)
    return {
        "access_token": create_access_token({"sub": user.email, "role": user.role}),
        "token_type": "bearer",
        "role": user.role,
    }
