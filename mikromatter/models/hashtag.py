"""Hashtag dictionary and the post/hashtag link table."""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String

from mikromatter.db.session import Base, new_id


class Hashtag(Base):
    __tablename__ = "hashtags"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)  # lowercase, no leading '#'
    created_at = Column(DateTime, default=datetime.utcnow)


class PostHashtag(Base):
    __tablename__ = "post_hashtags"

    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    hashtag_id = Column(String(36), ForeignKey("hashtags.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
