"""User model."""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from querybench.db.base import Base


class User(Base):
    """User model matching the seeded schema."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)

    # Relationships
    settings = relationship("UserSettings", back_populates="user", uselist=False, passive_deletes=True)
    questions = relationship("Question", back_populates="user", passive_deletes=True)
