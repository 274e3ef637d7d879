"""FastAPI dependencies for authentication, database and services."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gifshare.config import Settings
from gifshare.database import get_db
from gifshare.services.auth import AuthContext, AuthError, resolve_session
from gifshare.services.gifs import GifService
from gifshare.services.storage import UploadStorage

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_storage(request: Request) -> UploadStorage:
    return request.app.state.storage


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _authenticate(db: Session, token: str) -> AuthContext:
    try:
        return resolve_session(db, token)
    except AuthError as e:
        raise _unauthorized(e.reason) from e
    except SQLAlchemyError as e:
        logger.exception("Session lookup failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed",
        ) from e


def get_auth(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthContext:
    """Resolve the bearer token into the current user and session."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")
    return _authenticate(db, credentials.credentials)


def get_optional_auth(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthContext | None:
    """Like get_auth, but anonymous requests resolve to None.

    A token that is present but invalid is still rejected.
    """
    if credentials is None or not credentials.credentials:
        return None
    return _authenticate(db, credentials.credentials)


def get_gif_service(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    storage: Annotated[UploadStorage, Depends(get_storage)],
) -> GifService:
    """Get gif service with dependencies."""
    return GifService(db, settings, storage)
