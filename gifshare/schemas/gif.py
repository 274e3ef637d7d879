"""Gif schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class GifResponse(BaseModel):
    """Gif record response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    filename: str
    filepath: str
    share_url: str
    is_public: bool
    content_type: str
    size_bytes: int
    created_at: datetime
    updated_at: datetime


class ShareLinksResponse(BaseModel):
    """Ready-to-paste share snippets for one Gif."""

    direct: str
    html: str
    markdown: str
