"""SQLAlchemy declarative base and model imports for Alembic."""
from mikromatter.db.session import Base  # noqa: F401
from mikromatter.models.user import User  # noqa: F401
from mikromatter.models.post import Post  # noqa: F401
from mikromatter.models.comment import Comment  # noqa: F401
from mikromatter.models.engagement import Follow, Like, Repost  # noqa: F401
from mikromatter.models.hashtag import Hashtag, PostHashtag  # noqa: F401
from mikromatter.models.bookclub import Bookclub, BookclubMember  # noqa: F401

__all__ = ["Base", "User", "Post", "Comment", "Follow", "Like", "Repost", "Hashtag", "PostHashtag", "Bookclub", "BookclubMember"]
