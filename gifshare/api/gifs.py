"""Gif API endpoints: upload, gallery listing, lookup, deletion and sharing."""

import logging
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from gifshare.api.dependencies import (
    get_app_settings,
    get_auth,
    get_gif_service,
    get_optional_auth,
)
from gifshare.config import Settings
from gifshare.limiter import api_rate_limit
from gifshare.schemas.gif import GifResponse, ShareLinksResponse
from gifshare.services.auth import AuthContext
from gifshare.services.gifs import GifService, IncomingFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["gifs"])
share_router = APIRouter(tags=["share"])


def _server_error(detail: str) -> HTTPException:
    """Log the active exception and hide it behind a generic 500."""
    logger.exception(detail)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post("/upload", response_model=list[GifResponse], status_code=status.HTTP_201_CREATED)
@api_rate_limit
async def upload_gifs(
    request: Request,
    response: Response,
    auth: Annotated[AuthContext, Depends(get_auth)],
    service: Annotated[GifService, Depends(get_gif_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    gif: Annotated[list[UploadFile] | None, File(description="One or more GIF files")] = None,
    is_public: Annotated[bool, Form(alias="isPublic")] = False,
    title: Annotated[str | None, Form(max_length=255)] = None,
):
    """Upload one or more GIFs.

    The batch is all-or-nothing: one bad file rejects every file.

    Note: This endpoint must remain async because UploadFile.read() is async.
    """
    uploads = gif or []
    if len(uploads) > settings.upload_max_files:
        # Checked before reading so oversized batches are never buffered
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum is {settings.upload_max_files} per upload.",
        )

    files = [
        IncomingFile(filename=u.filename, content_type=u.content_type, data=await u.read())
        for u in uploads
    ]
    base_url = settings.public_base_url or str(request.base_url)

    try:
        return service.upload(
            auth.user,
            files,
            base_url=base_url,
            is_public=is_public,
            title=title or None,
        )
    except (SQLAlchemyError, OSError) as e:
        raise _server_error("Upload failed") from e


@router.get("/gifs", response_model=list[GifResponse])
@api_rate_limit
def list_gifs(
    request: Request,
    response: Response,
    auth: Annotated[AuthContext | None, Depends(get_optional_auth)],
    service: Annotated[GifService, Depends(get_gif_service)],
    q: Annotated[str | None, Query(max_length=255)] = None,
    user_id: Annotated[int | None, Query(alias="userId")] = None,
):
    """List the GIFs the requester may see, newest first."""
    requester = auth.user if auth else None
    try:
        return service.list_gifs(requester, search=q, owner_id=user_id)
    except SQLAlchemyError as e:
        raise _server_error("Failed to fetch GIFs") from e


@router.get("/gifs/{gif_id}", response_model=GifResponse)
@api_rate_limit
def get_gif(
    request: Request,
    response: Response,
    gif_id: int,
    auth: Annotated[AuthContext | None, Depends(get_optional_auth)],
    service: Annotated[GifService, Depends(get_gif_service)],
):
    """Get one GIF. Private GIFs are only visible to their owner."""
    requester = auth.user if auth else None
    try:
        return service.get_visible_gif(gif_id, requester)
    except SQLAlchemyError as e:
        raise _server_error("Failed to fetch GIF") from e


@router.get("/gifs/{gif_id}/share", response_model=ShareLinksResponse)
@api_rate_limit
def get_share_links(
    request: Request,
    response: Response,
    gif_id: int,
    auth: Annotated[AuthContext | None, Depends(get_optional_auth)],
    service: Annotated[GifService, Depends(get_gif_service)],
):
    """Get direct, HTML embed and Markdown share snippets for a GIF."""
    requester = auth.user if auth else None
    try:
        gif = service.get_visible_gif(gif_id, requester)
    except SQLAlchemyError as e:
        raise _server_error("Failed to fetch GIF") from e
    return ShareLinksResponse(**service.share_links(gif))


@router.delete("/gifs/{gif_id}")
@api_rate_limit
def delete_gif(
    request: Request,
    response: Response,
    gif_id: int,
    auth: Annotated[AuthContext, Depends(get_auth)],
    service: Annotated[GifService, Depends(get_gif_service)],
):
    """Delete a GIF and its file. Only the owner can delete."""
    try:
        service.delete_gif(gif_id, auth.user)
    except (SQLAlchemyError, OSError) as e:
        service.db.rollback()
        raise _server_error("Failed to delete GIF") from e
    return {"message": "GIF deleted successfully"}


@share_router.get("/g/{filename}")
def open_share_link(
    filename: str,
    service: Annotated[GifService, Depends(get_gif_service)],
):
    """Resolve a share link to the stored file."""
    gif = service.get_by_filename(filename)
    if not gif or not gif.is_public:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="GIF not found")
    return RedirectResponse(
        url=f"/uploads/{gif.filename}", status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
