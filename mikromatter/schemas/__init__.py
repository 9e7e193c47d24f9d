from mikromatter.schemas.user import (
    OAuthProfile,
    UserUpdate,
    UserResponse,
    UserPublic,
    UserStatsResponse,
    Token,
)
from mikromatter.schemas.post import PostCreate, PostResponse
from mikromatter.schemas.comment import CommentCreate, CommentResponse
from mikromatter.schemas.bookclub import BookclubCreate, BookclubResponse
from mikromatter.schemas.hashtag import TrendingHashtag
