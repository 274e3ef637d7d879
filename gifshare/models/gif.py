"""Gif model."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from gifshare.database import Base
from gifshare.models.mixins import TimestampMixin


class Gif(Base, TimestampMixin):
    """An uploaded GIF and the public URLs it is served under."""

    __tablename__ = "gifs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    filename = Column(String(512), unique=True, nullable=False)  # name on disk
    filepath = Column(String(1024), nullable=False)  # direct URL
    share_url = Column(String(1024), nullable=False)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    content_type = Column(String(100), default="image/gif", nullable=False)
    size_bytes = Column(Integer, default=0, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="gifs")
