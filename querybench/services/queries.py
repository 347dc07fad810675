"""The two read strategies under comparison.

Both return the questions of the user identified by ``email`` that are
visible: questions marked ``public``, plus questions with no visibility of
their own when the owner's default visibility is ``public``.
"""
from typing import Callable, Dict, List

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from querybench.models import Question, User, UserSettings

PUBLIC = "public"


def three_queries(db: Session, email: str) -> List[Question]:
    """Resolve user, then settings, then questions with three round trips."""
    # SELECT * FROM users WHERE email = :email
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        return []

    # SELECT * FROM user_settings WHERE user_id = :id
    settings = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()

    query = db.query(Question).filter(Question.user_id == user.id)
    if settings is not None and settings.default_visibility == PUBLIC:
        query = query.filter(or_(Question.visibility == PUBLIC, Question.visibility.is_(None)))
    else:
        query = query.filter(Question.visibility == PUBLIC)
    return query.all()


def one_query(db: Session, email: str) -> List[Question]:
    """Fetch the same questions with a single joined query.

    SELECT q.*
    FROM questions q
    JOIN users u ON q.user_id = u.id
    JOIN user_settings us ON u.id = us.user_id
    WHERE u.email = :email
    AND (
        q.visibility = 'public'
        OR (us.default_visibility = 'public' AND q.visibility IS NULL)
    );
    """
    return (
        db.query(Question)
        .join(User, Question.user_id == User.id)
        .join(UserSettings, User.id == UserSettings.user_id)
        .filter(User.email == email)
        .filter(
            or_(
                Question.visibility == PUBLIC,
                and_(UserSettings.default_visibility == PUBLIC, Question.visibility.is_(None)),
            )
        )
        .all()
    )


QueryStrategy = Callable[[Session, str], List[Question]]

STRATEGIES: Dict[str, QueryStrategy] = {
    "three_queries": three_queries,
    "one_query": one_query,
}
