"""Upload endpoints for media files.

Clients ask for a write URL, PUT the raw bytes there, then hand the URL to
``PUT /users/me/avatar`` or ``POST /posts/image/finalize``.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from mikromatter.api.deps import get_current_user
from mikromatter.core.config import settings
from mikromatter.core.exceptions import ForbiddenError, NotFoundError
from mikromatter.models.user import User
from mikromatter.schemas.upload import UploadURLResponse
from mikromatter.services.storage_service import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])

# Allowed MIME types
IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def _validate_content_type(request: Request) -> str:
    content_type = (request.headers.get("content-type") or "").split(";")[0].strip()
    if content_type not in IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {content_type}. Allowed: {sorted(IMAGE_TYPES)}",
        )
    return content_type


async def _read_and_validate_size(request: Request, max_size_mb: int) -> bytes:
    data = await request.body()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if len(data) > max_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Max {max_size_mb}MB",
        )
    return data


@router.post("/avatar/upload-url", response_model=UploadURLResponse)
async def avatar_upload_url(current_user: User = Depends(get_current_user)):
    return UploadURLResponse(upload_url=get_storage().get_upload_url(current_user.id, "avatar"))


@router.post("/post-image/upload-url", response_model=UploadURLResponse)
async def post_image_upload_url(current_user: User = Depends(get_current_user)):
    return UploadURLResponse(upload_url=get_storage().get_upload_url(current_user.id, "post-image"))


@router.put("/objects/{token}", status_code=status.HTTP_204_NO_CONTENT)
async def put_object(token: str, request: Request):
    """Receive the bytes for an upload URL. The signed token is the authorization."""
    content_type = _validate_content_type(request)
    data = await _read_and_validate_size(request, max_size_mb=settings.MAX_UPLOAD_MB)
    try:
        object_id = get_storage().store_upload(token, data, content_type)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid upload URL")
    logger.debug("Stored upload %s (%d bytes)", object_id, len(data))
    return None
