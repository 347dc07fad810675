"""Database models."""
from querybench.models.user import User
from querybench.models.user_settings import UserSettings
from querybench.models.question import Question

__all__ = [
    "User",
    "UserSettings",
    "Question",
]
