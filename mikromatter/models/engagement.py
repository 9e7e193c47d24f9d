"""Engagement models: Follow, Like and Repost.

Each is a membership set keyed by its composite primary key, so a pair can
appear at most once.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String

from mikromatter.db.session import Base


class Follow(Base):
    __tablename__ = "follows"

    follower_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    following_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Like(Base):
    __tablename__ = "likes"

    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Repost(Base):
    __tablename__ = "reposts"

    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
