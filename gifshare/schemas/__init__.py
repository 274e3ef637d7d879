"""Pydantic schemas for API request/response validation."""

from gifshare.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from gifshare.schemas.gif import GifResponse, ShareLinksResponse

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "GifResponse",
    "ShareLinksResponse",
]
