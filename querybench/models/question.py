"""Question model."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from querybench.db.base import Base


class Question(Base):
    """Question owned by a user.

    A NULL ``visibility`` defers to the owner's ``default_visibility``.
    """

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question = Column(Text, nullable=False)
    answer = Column(Text)
    visibility = Column(String(255), nullable=True, default=None)  # public / private / NULL
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="questions")
