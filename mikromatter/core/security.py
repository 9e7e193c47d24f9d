"""Security utilities: JWT token handling for API and upload tokens."""
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from mikromatter.core.config import settings


def _encode(claims: dict, expires_in: timedelta) -> str:
    to_encode = {**claims, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: str) -> str:
    return _encode(
        {"sub": str(subject), "type": "access"},
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(subject: str) -> str:
    return _encode(
        {"sub": str(subject), "type": "refresh"},
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def create_upload_token(subject: str, object_id: str, kind: str) -> str:
    """Short-lived token embedded in an upload URL. Grants one write to one object id."""
    return _encode(
        {"sub": str(subject), "obj": object_id, "kind": kind, "type": "upload"},
        timedelta(minutes=settings.UPLOAD_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str, verify_exp: bool = True) -> dict | None:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
        return payload
    except JWTError:
        return None
