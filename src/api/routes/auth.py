"""
Admin authentication routes.

Login issues a session token as JSON and as an HttpOnly cookie; the admin
newsletter, email settings and analytics routers accept either.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field

from src.adapters.sqlite_db import SQLiteUserRepo
from src.api.auth_utils import (
    SESSION_COOKIE,
    SESSION_TTL,
    authenticate_admin,
    create_admin_token,
)
from src.api.deps import Settings, get_current_user, get_settings, get_user_repo
from src.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Seconds until the token expires")


class AdminProfile(BaseModel):
    id: str
    email: str
    display_name: str


@router.post("/login", response_model=SessionToken)
async def login(
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    settings: Settings = Depends(get_settings),
) -> SessionToken:
    """Sign in an admin with email (form ``username``) and password."""
    user = authenticate_admin(user_repo, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Admin account is disabled"
        )

    token = create_admin_token(user)
    ttl_seconds = int(SESSION_TTL.total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE,
        value=f"Bearer {token}",
        httponly=True,
        max_age=ttl_seconds,
        samesite="lax",
        secure=settings.environment == "production",
    )
    logger.info("Admin %s signed in", user.email)
    return SessionToken(access_token=token, expires_in=ttl_seconds)


@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    response.delete_cookie(key=SESSION_COOKIE)
    return {"status": "success"}


@router.get("/me", response_model=AdminProfile)
def read_current_admin(current_user: User = Depends(get_current_user)) -> AdminProfile:
    return AdminProfile(
        id=str(current_user.id),
        email=current_user.email,
        display_name=current_user.display_name,
    )
