"""Shared fixtures: a throwaway SQLite backend with the schema created."""
import random

import pytest

from querybench.db.schema import create_schema
from querybench.db.sessions import create_backend
from querybench.services.seeder import SeedPlan, seed_backend


@pytest.fixture
def backend(tmp_path):
    """File-backed SQLite backend, so worker threads share the same data."""
    db_path = tmp_path / "querybench_test.sqlite3"
    backend = create_backend("sqlite", f"sqlite:///{db_path}")
    create_schema(backend)

    yield backend

    backend.dispose()


@pytest.fixture
def seeded_backend(backend):
    """Backend holding 20 seeded users."""
    seed_backend(backend, SeedPlan(total_users=20, batch_size=7), rng=random.Random(42))
    return backend
