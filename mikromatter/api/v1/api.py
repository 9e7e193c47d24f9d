"""V1 API router aggregation."""
from fastapi import APIRouter

from mikromatter.api.v1.endpoints import ai, auth, bookclubs, hashtags, posts, search, uploads, users

api_router = APIRouter(prefix="/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(posts.router)
api_router.include_router(hashtags.router)
api_router.include_router(bookclubs.router)
api_router.include_router(uploads.router)
api_router.include_router(ai.router)
api_router.include_router(search.router, prefix="/search", tags=["search"])
