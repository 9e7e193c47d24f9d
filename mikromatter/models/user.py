"""User model. Rows are created on first OAuth login, keyed by a provider-prefixed id."""
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from mikromatter.db.session import Base, new_id


class User(Base):
    __tablename__ = "users"

    id = Column(String(255), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Dependent rows are removed by ON DELETE CASCADE in the database
    posts = relationship("Post", back_populates="author", passive_deletes=True)
    comments = relationship("Comment", back_populates="author", passive_deletes=True)
    created_bookclubs = relationship("Bookclub", back_populates="creator", passive_deletes=True)
