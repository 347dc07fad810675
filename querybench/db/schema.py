"""Schema creation and teardown."""
import logging

from querybench.db.base import Base
from querybench.db.sessions import StorageBackend

# Import all models to ensure they're registered with Base
import querybench.models  # noqa: F401

logger = logging.getLogger(__name__)


def create_schema(backend: StorageBackend) -> None:
    """Create the users, questions and user_settings tables if missing."""
    Base.metadata.create_all(bind=backend.engine)
    logger.info("Created schema on %s backend", backend.name)


def drop_schema(backend: StorageBackend) -> None:
    """Drop all tables, dependents first."""
    Base.metadata.drop_all(bind=backend.engine)
    logger.info("Dropped schema on %s backend", backend.name)
