"""Seed generator.

Populates ``users``, ``user_settings`` and ``questions`` for a configured
number of users. Users are processed in contiguous id batches so that no
single INSERT exceeds the backend's bind-parameter limit; every user gets one
settings row and three questions (public, private and unset visibility).

Usage:
    seeder = UserSeeder(backend, SeedPlan(total_users=1000, batch_size=150))
    summary = seeder.run()
"""
import itertools
import logging
import random
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from querybench.core.exceptions import BackendCapacityError, classify_database_error
from querybench.db.operations import batch_insert, clear_tables, max_rows_per_statement
from querybench.db.sessions import StorageBackend
from querybench.models import Question, User, UserSettings

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_OPTIONS = ("public", "private")
# One question per variant; None is the "inherit owner's default" case.
QUESTION_VISIBILITIES = ("public", "private", None)
QUESTIONS_PER_USER = len(QUESTION_VISIBILITIES)

# Children first so foreign keys are never violated.
CLEAR_ORDER = (UserSettings.__table__, Question.__table__, User.__table__)


class RandomSource(Protocol):
    """Subset of ``random.Random`` the seeder draws from."""

    def random(self) -> float: ...

    def choice(self, seq: Sequence): ...


@dataclass(frozen=True)
class SeedPlan:
    """How many users to create and how many go into each batch."""

    total_users: int
    batch_size: int

    def __post_init__(self) -> None:
        for name in ("total_users", "batch_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @property
    def question_batch_size(self) -> int:
        return self.batch_size * QUESTIONS_PER_USER

    @property
    def batch_count(self) -> int:
        return -(-self.total_users // self.batch_size)


@dataclass(frozen=True)
class UserBatch:
    """Contiguous, inclusive range of user ids."""

    index: int
    start: int
    end: int

    @property
    def user_ids(self) -> range:
        return range(self.start, self.end + 1)

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass
class BatchRows:
    users: List[Dict]
    user_settings: List[Dict]
    questions: List[Dict]


@dataclass
class SeedSummary:
    users: int = 0
    user_settings: int = 0
    questions: int = 0
    batches: int = 0
    elapsed_s: float = 0.0


def iter_batches(total_users: int, batch_size: int) -> Iterator[UserBatch]:
    """Partition ``[1, total_users]`` into batches of at most ``batch_size`` ids."""
    if total_users <= 0 or batch_size <= 0:
        raise ValueError("total_users and batch_size must be positive")
    for index, start in enumerate(range(1, total_users + 1, batch_size), start=1):
        yield UserBatch(index=index, start=start, end=min(start + batch_size - 1, total_users))


def random_email() -> str:
    return f"{uuid.uuid4()}@example.com"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_batch_rows(
    batch: UserBatch,
    question_ids: Iterator[int],
    rng: RandomSource,
    email_factory: Callable[[], str] = random_email,
    now: Optional[datetime] = None,
) -> BatchRows:
    """Synthesize the rows of one batch.

    ``question_ids`` is shared by the whole run so question ids keep
    increasing across batches.
    """
    now = now or _utcnow()
    rows = BatchRows(users=[], user_settings=[], questions=[])

    for user_id in batch.user_ids:
        rows.users.append({"id": user_id, "name": f"User_{user_id}", "email": email_factory()})
        rows.user_settings.append(
            {
                "user_id": user_id,
                "default_visibility": rng.choice(DEFAULT_VISIBILITY_OPTIONS),
                "profile_handle": f"handle_{user_id}",
            }
        )
        for visibility in QUESTION_VISIBILITIES:
            question_id = next(question_ids)
            label = visibility if visibility is not None else "null"
            answer = f"Answer text for question {question_id}" if rng.random() > 0.5 else None
            rows.questions.append(
                {
                    "id": question_id,
                    "question": f"Question text for user {user_id} with visibility {label}",
                    "answer": answer,
                    "visibility": visibility,
                    "user_id": user_id,
                    "created_at": now,
                    "updated_at": now,
                }
            )
    return rows


class UserSeeder:
    """Clear the three tables and refill them batch by batch.

    Each batch is committed on its own. A failing batch is rolled back and
    aborts the run; batches committed before it stay in place, and the next
    run clears them again.
    """

    def __init__(
        self,
        backend: StorageBackend,
        plan: SeedPlan,
        rng: Optional[RandomSource] = None,
        email_factory: Optional[Callable[[], str]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.backend = backend
        self.plan = plan
        self.rng = rng or random.Random()
        self.email_factory = email_factory or random_email
        self.clock = clock

    def validate_capacity(self) -> None:
        """Refuse plans whose statements would exceed the backend's parameter limit."""
        dialect = self.backend.dialect
        statements = (
            (User.__table__, self.plan.batch_size),
            (UserSettings.__table__, self.plan.batch_size),
            (Question.__table__, self.plan.question_batch_size),
        )
        for table, rows in statements:
            limit = max_rows_per_statement(dialect, len(table.columns))
            if rows > limit:
                raise BackendCapacityError(
                    f"Batch of {rows} rows for {table.name} exceeds the {dialect} limit of {limit} rows per statement",
                    context={"backend": self.backend.name, "batch_size": self.plan.batch_size},
                )

    def run(self) -> SeedSummary:
        self.validate_capacity()

        summary = SeedSummary()
        started = time.perf_counter()
        question_ids = itertools.count(start=1)
        total_batches = self.plan.batch_count

        with self.backend.session() as db:
            self._execute(db, "clear", lambda: clear_tables(db, CLEAR_ORDER))

            for batch in iter_batches(self.plan.total_users, self.plan.batch_size):
                rows = build_batch_rows(batch, question_ids, self.rng, self.email_factory, self.clock())
                logger.info("Inserting batch %d of %d", batch.index, total_batches)

                def write_batch():
                    batch_insert(db, User.__table__, rows.users, self.plan.batch_size)
                    batch_insert(db, UserSettings.__table__, rows.user_settings, self.plan.batch_size)
                    batch_insert(db, Question.__table__, rows.questions, self.plan.question_batch_size)

                self._execute(db, "batch", write_batch, batch=batch.index)
                summary.users += len(rows.users)
                summary.user_settings += len(rows.user_settings)
                summary.questions += len(rows.questions)
                summary.batches += 1

            if self.backend.dialect == "postgresql":
                self._execute(db, "sync_sequences", lambda: self._sync_sequences(db))

        summary.elapsed_s = time.perf_counter() - started
        logger.info(
            "Seeding completed: %d users, %d questions in %d batches (%.2fs)",
            summary.users,
            summary.questions,
            summary.batches,
            summary.elapsed_s,
        )
        return summary

    def _execute(self, db, step: str, work: Callable[[], object], **context) -> None:
        """Run one unit of work and commit it, wrapping database errors."""
        try:
            work()
            db.commit()
        except SQLAlchemyError as exc:
            logger.error("Seeding failed during %s on %s backend: %s", step, self.backend.name, exc)
            raise classify_database_error(
                exc, context={"backend": self.backend.name, "step": step, **context}
            ) from exc

    @staticmethod
    def _sync_sequences(db) -> None:
        # Ids were assigned explicitly, so the serial sequences never advanced.
        for table in ("users", "questions"):
            db.execute(
                text(
                    f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
                )
            )


def seed_backend(
    backend: StorageBackend,
    plan: SeedPlan,
    rng: Optional[RandomSource] = None,
    email_factory: Optional[Callable[[], str]] = None,
) -> SeedSummary:
    """Seed ``backend`` according to ``plan``."""
    return UserSeeder(backend, plan, rng=rng, email_factory=email_factory).run()
