"""Storage service for uploaded images (avatars and post images).

Uses local disk for now. Designed to swap for S3/MinIO later via the
StorageBackend interface. Upload flow:

1. ``get_upload_url`` hands the client a write URL carrying a short-lived signed token.
2. The client PUTs the bytes to that URL (``store_upload``).
3. ``finalize`` records an access policy (owner, visibility) and returns the
   opaque object path the rest of the app stores, e.g. ``/objects/uploads/<id>``.
"""
import json
import re
import uuid
from pathlib import Path
from typing import Protocol

from mikromatter.core.config import settings
from mikromatter.core.exceptions import ForbiddenError, ObjectNotFoundError
from mikromatter.core.security import create_upload_token, decode_token

UPLOAD_KINDS = {"avatar", "post-image"}
OBJECT_PREFIX = "/objects/"
UPLOAD_ROUTE = "/api/v1/uploads/objects/"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
_OBJECT_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class StorageBackend(Protocol):
    """Protocol for storage backends. Implement LocalStorage now, S3Storage later."""

    def get_upload_url(self, user_id: str, kind: str) -> str:
        ...

    def store_upload(self, token: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        """Write bytes for an upload token. Returns the object id."""
        ...

    def finalize(self, raw_url: str, owner_id: str, visibility: str = "public") -> str:
        """Attach an access policy to an uploaded object and return its object path."""
        ...

    def open_object(self, object_path: str) -> Path:
        ...

    def content_type(self, object_path: str) -> str:
        ...

    def can_access(self, object_path: str, user_id: str | None) -> bool:
        ...


class LocalStorage:
    """Store files on local disk. Path: uploads/objects/{id}, metadata beside it in {id}.json"""

    def __init__(self, base_dir: str | None = None, base_url: str | None = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).resolve()
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def _objects_dir(self) -> Path:
        path = self.base_dir / "objects"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _object_file(self, object_id: str) -> Path:
        if not _OBJECT_ID_RE.match(object_id or ""):
            raise ObjectNotFoundError("Object not found")
        return self._objects_dir() / object_id

    def _meta_file(self, object_id: str) -> Path:
        return self._object_file(object_id).with_suffix(".json")

    def _read_meta(self, object_id: str) -> dict:
        meta = self._meta_file(object_id)
        if not meta.exists():
            return {}
        return json.loads(meta.read_text(encoding="utf-8"))

    def _write_meta(self, object_id: str, meta: dict) -> None:
        self._meta_file(object_id).write_text(json.dumps(meta), encoding="utf-8")

    def _object_id_from_path(self, object_path: str) -> str:
        if not object_path.startswith(OBJECT_PREFIX + "uploads/"):
            raise ObjectNotFoundError("Object not found")
        return object_path[len(OBJECT_PREFIX + "uploads/"):]

    def get_upload_url(self, user_id: str, kind: str) -> str:
        if kind not in UPLOAD_KINDS:
            raise ValueError(f"Unknown upload kind: {kind}")
        token = create_upload_token(user_id, uuid.uuid4().hex, kind)
        return f"{self.base_url}{UPLOAD_ROUTE}{token}"

    def store_upload(self, token: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        payload = decode_token(token)
        if not payload or payload.get("type") != "upload":
            raise ForbiddenError("Invalid or expired upload URL")
        object_id = payload["obj"]
        self._object_file(object_id).write_bytes(data)
        self._write_meta(object_id, {"content_type": content_type})
        return object_id

    def finalize(self, raw_url: str, owner_id: str, visibility: str = "public") -> str:
        if UPLOAD_ROUTE not in raw_url:
            # Not one of ours: stored as given
            return raw_url
        token = raw_url.split(UPLOAD_ROUTE, 1)[1].split("?", 1)[0]
        # The write was authorized when it happened; expiry only bounds the upload window
        payload = decode_token(token, verify_exp=False)
        if not payload or payload.get("type") != "upload":
            raise ForbiddenError("Invalid upload URL")
        if payload.get("sub") != owner_id:
            raise ForbiddenError("Upload belongs to another user")
        object_id = payload["obj"]
        if not self._object_file(object_id).exists():
            raise ObjectNotFoundError("Upload not found")
        meta = self._read_meta(object_id)
        meta.update(owner=owner_id, visibility=visibility)
        self._write_meta(object_id, meta)
        return f"{OBJECT_PREFIX}uploads/{object_id}"

    def get_policy(self, object_path: str) -> dict | None:
        """Owner and visibility, or None until the object has been finalized."""
        meta = self._read_meta(self._object_id_from_path(object_path))
        if "owner" not in meta:
            return None
        return {"owner": meta["owner"], "visibility": meta.get("visibility", "private")}

    def open_object(self, object_path: str) -> Path:
        filepath = self._object_file(self._object_id_from_path(object_path))
        if not filepath.exists():
            raise ObjectNotFoundError("Object not found")
        return filepath

    def content_type(self, object_path: str) -> str:
        meta = self._read_meta(self._object_id_from_path(object_path))
        return meta.get("content_type") or DEFAULT_CONTENT_TYPE

    def can_access(self, object_path: str, user_id: str | None) -> bool:
        """Public objects are readable by anyone; private ones only by their owner."""
        policy = self.get_policy(object_path)
        if not policy:
            return False
        if policy["visibility"] == "public":
            return True
        return user_id is not None and policy["owner"] == user_id


# Singleton - swap implementation here when moving to S3
_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
