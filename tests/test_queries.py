"""Tests for the two read strategies."""
import pytest
from sqlalchemy import select

from querybench.models import User, UserSettings
from querybench.services.queries import STRATEGIES, one_query, three_queries


def _users(backend):
    with backend.session() as db:
        return db.execute(
            select(User.email, UserSettings.default_visibility).join(
                UserSettings, UserSettings.user_id == User.id
            )
        ).all()


class TestVisibility:
    @pytest.mark.parametrize("strategy", [three_queries, one_query])
    def test_visible_questions_follow_default_visibility(self, seeded_backend, strategy):
        for email, default_visibility in _users(seeded_backend):
            with seeded_backend.session() as db:
                visibilities = sorted(
                    (q.visibility or "null") for q in strategy(db, email)
                )
            if default_visibility == "public":
                assert visibilities == ["null", "public"]
            else:
                assert visibilities == ["public"]

    def test_strategies_agree(self, seeded_backend):
        for email, _ in _users(seeded_backend):
            with seeded_backend.session() as db:
                sequential = {q.id for q in three_queries(db, email)}
                joined = {q.id for q in one_query(db, email)}
            assert sequential == joined

    @pytest.mark.parametrize("name", sorted(STRATEGIES))
    def test_unknown_email_returns_nothing(self, seeded_backend, name):
        with seeded_backend.session() as db:
            assert STRATEGIES[name](db, "nobody@example.com") == []

    def test_private_questions_never_returned(self, seeded_backend):
        for email, _ in _users(seeded_backend):
            with seeded_backend.session() as db:
                for strategy in (three_queries, one_query):
                    assert all(q.visibility != "private" for q in strategy(db, email))
