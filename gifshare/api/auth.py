"""Authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from gifshare.api.dependencies import get_app_settings, get_auth
from gifshare.config import Settings
from gifshare.database import get_db
from gifshare.limiter import api_rate_limit, auth_rate_limit
from gifshare.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from gifshare.services.auth import (
    AuthContext,
    authenticate_user,
    create_session,
    create_user,
    get_user_by_email,
    revoke_session,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@api_rate_limit
@auth_rate_limit
async def register(
    request: Request,
    response: Response,
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Register a new user and start a session."""
    # Check if user already exists
    existing_user = get_user_by_email(db, user_data.email)
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = create_user(db, user_data.email, user_data.password, user_data.name)
    session = create_session(db, user, settings.session_expiration_minutes)

    return AuthResponse(
        access_token=session.token,
        expires_at=session.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
@api_rate_limit
@auth_rate_limit
async def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Login with email and password."""
    user = authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = create_session(db, user, settings.session_expiration_minutes)

    return AuthResponse(
        access_token=session.token,
        expires_at=session.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
@api_rate_limit
async def get_me(
    request: Request,
    response: Response,
    auth: Annotated[AuthContext, Depends(get_auth)],
):
    """Get current user information."""
    return auth.user


@router.post("/logout")
@api_rate_limit
async def logout(
    request: Request,
    response: Response,
    auth: Annotated[AuthContext, Depends(get_auth)],
    db: Annotated[Session, Depends(get_db)],
):
    """Logout by revoking the current session."""
    revoke_session(db, auth.session)
    return {"message": "Logged out successfully"}
