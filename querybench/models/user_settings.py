"""User settings model."""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from querybench.db.base import Base


class UserSettings(Base):
    """Per-user preferences, one row per user."""

    __tablename__ = "user_settings"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    default_visibility = Column(String(255))  # public / private
    profile_handle = Column(String(255))

    # Relationships
    user = relationship("User", back_populates="settings")
