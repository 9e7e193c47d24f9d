"""Serve finalized objects, e.g. ``/objects/uploads/<id>``, subject to their access policy."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from mikromatter.api.deps import get_current_user_optional
from mikromatter.core.exceptions import NotFoundError
from mikromatter.models.user import User
from mikromatter.services.storage_service import OBJECT_PREFIX, get_storage

router = APIRouter(tags=["objects"])


@router.get("/objects/{object_path:path}")
async def get_object(
    object_path: str,
    current_user: User | None = Depends(get_current_user_optional),
):
    storage = get_storage()
    path = OBJECT_PREFIX + object_path
    try:
        filepath = storage.open_object(path)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")
    if not storage.can_access(path, current_user.id if current_user else None):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")
    policy = storage.get_policy(path)
    # Owner-only objects must not land in shared caches
    if policy and policy["visibility"] == "public":
        cache_control = "public, max-age=3600"
    else:
        cache_control = "private, no-store"
    media_type = storage.content_type(path)
    return FileResponse(filepath, media_type=media_type, headers={"Cache-Control": cache_control})
