"""Writing assistance: post ideas and proofreading. Results are returned, never stored."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from mikromatter.api.deps import get_current_user
from mikromatter.core.exceptions import TextGenerationError
from mikromatter.models.user import User
from mikromatter.schemas.ai import IdeasRequest, IdeasResponse, ProofreadRequest, ProofreadResponse
from mikromatter.services.ai_service import TextGenerationClient, get_text_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate-ideas", response_model=IdeasResponse)
async def generate_ideas(
    data: IdeasRequest,
    current_user: User = Depends(get_current_user),
    client: TextGenerationClient = Depends(get_text_client),
):
    try:
        ideas = await client.generate_post_ideas(data.topic)
    except TextGenerationError as e:
        logger.error("Idea generation failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to generate post ideas")
    return IdeasResponse(ideas=ideas)


@router.post("/proofread", response_model=ProofreadResponse)
async def proofread(
    data: ProofreadRequest,
    current_user: User = Depends(get_current_user),
    client: TextGenerationClient = Depends(get_text_client),
):
    if not data.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content is required")
    try:
        return await client.proofread(data.content)
    except TextGenerationError as e:
        logger.error("Proofreading failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to proofread content")
