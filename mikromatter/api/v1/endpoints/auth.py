"""Auth endpoints: token refresh and the current caller.

Sign-in itself happens at the OAuth provider; this service only verifies the
bearer tokens it issued afterwards.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api.deps import get_current_user, get_db
from mikromatter.core.security import decode_token
from mikromatter.models.user import User
from mikromatter.schemas.user import Token, TokenRefresh, UserResponse
from mikromatter.services.user_service import create_tokens_for_user, get_user, user_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/refresh", response_model=Token)
async def refresh(
    data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    payload = decode_token(data.refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = await get_user(db, payload.get("sub") or "")
    if not user:
        logger.info("Refresh rejected for unknown user %s", payload.get("sub"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    access_token, refresh_token = create_tokens_for_user(user)
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        user=user_to_response(user, include_email=True),
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, include_email=True)
