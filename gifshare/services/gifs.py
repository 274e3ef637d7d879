"""Gif service for uploads, visibility-scoped listing, deletion and sharing."""

import html
import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from gifshare.config import Settings
from gifshare.models.gif import Gif
from gifshare.models.user import User
from gifshare.services.storage import UploadStorage

logger = logging.getLogger(__name__)

GIF_CONTENT_TYPE = "image/gif"
MAX_TITLE_LENGTH = 255


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded file, fully read from the request."""

    filename: str | None
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_urls(base_url: str, filename: str) -> tuple[str, str]:
    """Return (direct file URL, share URL) for a stored filename."""
    base = base_url.rstrip("/")
    return f"{base}/uploads/{filename}", f"{base}/g/{filename}"


class GifService:
    """Service for Gif-related operations."""

    def __init__(self, db: Session, settings: Settings, storage: UploadStorage):
        self.db = db
        self.settings = settings
        self.storage = storage

    # --- Upload ---

    def validate_batch(self, files: list[IncomingFile]) -> None:
        """Reject the whole batch if any file breaks the upload policy."""
        if not files:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")

        max_files = self.settings.upload_max_files
        if len(files) > max_files:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Too many files. Maximum is {max_files} per upload.",
            )

        max_size = self.settings.upload_max_file_size
        for f in files:
            if f.content_type != GIF_CONTENT_TYPE:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid file type for '{f.filename}'. Only GIF files are allowed.",
                )
            if f.size > max_size:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=(
                        f"File '{f.filename}' is too large. "
                        f"Maximum size is {max_size // (1024 * 1024)}MB."
                    ),
                )

    def make_room(self, incoming_bytes: int) -> list[str]:
        """Evict the oldest stored files until ``incoming_bytes`` fits the quota.

        Destructive: evicted files and their Gif rows are gone for good.
        The usage check is not locked, so concurrent uploads may both pass
        it or both evict. Returns the evicted filenames.
        """
        quota = self.settings.upload_storage_quota
        if quota is None:
            return []
        if incoming_bytes > quota:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Upload exceeds the storage quota",
            )

        used = self.storage.usage()
        if used + incoming_bytes <= quota:
            return []

        victims = []
        for f in self.storage.list_files():
            if used + incoming_bytes <= quota:
                break
            victims.append(f.name)
            used -= f.size

        self.db.query(Gif).filter(Gif.filename.in_(victims)).delete(synchronize_session=False)
        self.db.commit()
        for name in victims:
            self.storage.remove(name)
            logger.warning(f"Evicted stored file to free space: {name}")
        return victims

    def upload(
        self,
        user: User,
        files: list[IncomingFile],
        base_url: str,
        is_public: bool = False,
        title: str | None = None,
    ) -> list[Gif]:
        """Store a validated batch and create one Gif row per file."""
        self.validate_batch(files)
        self.make_room(sum(f.size for f in files))

        written: list[str] = []
        try:
            gifs = []
            for f in files:
                filename = self.storage.make_filename(f.filename)
                self.storage.write(filename, f.data)
                written.append(filename)

                filepath, share_url = build_urls(base_url, filename)
                gif = Gif(
                    user_id=user.id,
                    title=(title or f.filename or filename)[:MAX_TITLE_LENGTH],
                    filename=filename,
                    filepath=filepath,
                    share_url=share_url,
                    is_public=is_public,
                    content_type=GIF_CONTENT_TYPE,
                    size_bytes=f.size,
                )
                self.db.add(gif)
                gifs.append(gif)

            self.db.commit()
        except Exception:
            self.db.rollback()
            for filename in written:
                self.storage.remove(filename)
            raise

        for gif in gifs:
            self.db.refresh(gif)
        logger.info(f"User {user.id} uploaded {len(gifs)} GIF(s)")
        return gifs

    # --- Listing and lookup ---

    def list_gifs(
        self,
        requester: User | None,
        search: str | None = None,
        owner_id: int | None = None,
    ) -> list[Gif]:
        """Gifs matching the search that the requester may see, newest first."""
        query = self.db.query(Gif)

        if search:
            query = query.filter(Gif.title.ilike(f"%{escape_like(search)}%", escape="\\"))

        if owner_id is not None:
            query = query.filter(Gif.user_id == owner_id)
            if requester is None:
                query = query.filter(Gif.is_public == True, Gif.user_id > 0)  # noqa: E712
            elif requester.id != owner_id:
                query = query.filter(Gif.is_public == True)  # noqa: E712
        elif requester is not None:
            query = query.filter(
                or_(Gif.is_public == True, Gif.user_id == requester.id)  # noqa: E712
            )
        else:
            query = query.filter(Gif.is_public == True, Gif.user_id > 0)  # noqa: E712

        return query.order_by(Gif.created_at.desc(), Gif.id.desc()).all()

    def get_visible_gif(self, gif_id: int, requester: User | None) -> Gif:
        """Get a Gif if it exists and the requester may see it."""
        gif = self.db.query(Gif).filter(Gif.id == gif_id).first()
        if not gif:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="GIF not found")

        if not gif.is_public and (requester is None or gif.user_id != requester.id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

        return gif

    def get_by_filename(self, filename: str) -> Gif | None:
        return self.db.query(Gif).filter(Gif.filename == filename).first()

    # --- Deletion ---

    def delete_gif(self, gif_id: int, user: User) -> None:
        """Delete an owned Gif row, then its file.

        A missing Gif and someone else's Gif are reported the same way.
        """
        gif = self.db.query(Gif).filter(Gif.id == gif_id, Gif.user_id == user.id).first()
        if not gif:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="GIF not found or unauthorized",
            )

        filename = gif.filename
        self.db.delete(gif)
        self.db.commit()

        self.storage.remove(filename)
        logger.info(f"User {user.id} deleted GIF {gif_id} ({filename})")

    # --- Sharing ---

    @staticmethod
    def share_links(gif: Gif) -> dict[str, str]:
        """Direct link plus HTML and Markdown embed snippets."""
        url = gif.share_url
        return {
            "direct": url,
            "html": f'<img src="{html.escape(url)}" alt="{html.escape(gif.title)}" />',
            "markdown": f"![{gif.title}]({url})",
        }
