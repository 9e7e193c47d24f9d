"""Bookclub model (clubs centered on an indie author's current book) and memberships."""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from mikromatter.db.session import Base, new_id

ROLE_CREATOR = "creator"
ROLE_MEMBER = "member"


class Bookclub(Base):
    __tablename__ = "bookclubs"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    creator_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    current_book = Column(String(200), nullable=False)
    current_author = Column(String(100), nullable=False)
    author_website = Column(Text, nullable=True)
    book_cover_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    creator = relationship("User", back_populates="created_bookclubs")


class BookclubMember(Base):
    __tablename__ = "bookclub_members"

    bookclub_id = Column(String(36), ForeignKey("bookclubs.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(String(20), nullable=False, default=ROLE_MEMBER)  # creator | member
    joined_at = Column(DateTime, default=datetime.utcnow)
