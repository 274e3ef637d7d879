"""Authentication service for sessions and password handling."""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from gifshare.models.session import UserSession
from gifshare.models.user import User

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class AuthContext:
    """Result of a successful token check, handed to request handlers."""

    user: User
    session: UserSession


class AuthError(Exception):
    """Token check failure. ``reason`` is safe to show to the caller."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def create_session(db: Session, user: User, expiration_minutes: int) -> UserSession:
    """Issue a new session token for the user."""
    session = UserSession(
        token=generate_session_token(),
        user_id=user.id,
        expires_at=datetime.now(UTC) + timedelta(minutes=expiration_minutes),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def resolve_session(db: Session, token: str) -> AuthContext:
    """Look up a live session by token and resolve its user.

    Raises AuthError when the token is unknown or expired, or when the
    session points at a user that no longer exists.
    """
    session = (
        db.query(UserSession)
        .filter(UserSession.token == token, UserSession.expires_at > datetime.now(UTC))
        .first()
    )
    if session is None or session.is_expired():
        raise AuthError("Invalid or expired session")

    user = db.query(User).filter(User.id == session.user_id).first()
    if user is None:
        raise AuthError("User not found")

    return AuthContext(user=user, session=session)


def revoke_session(db: Session, session: UserSession) -> None:
    """Delete a session so its token stops working."""
    db.delete(session)
    db.commit()


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by email and password."""
    user = db.query(User).filter(User.email == email).first()
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, email: str, password: str, name: str) -> User:
    """Create a new user."""
    hashed_password = get_password_hash(password)
    user = User(email=email, password_hash=hashed_password, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
