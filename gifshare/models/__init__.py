"""SQLAlchemy models."""

from gifshare.models.gif import Gif
from gifshare.models.session import UserSession
from gifshare.models.user import User

__all__ = [
    "User",
    "UserSession",
    "Gif",
]
