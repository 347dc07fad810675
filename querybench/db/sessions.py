"""Storage backends: one engine and session factory per database."""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from querybench.core.config import Settings

logger = logging.getLogger(__name__)

SQLITE = "sqlite"
POSTGRES = "postgres"
BACKEND_NAMES = (SQLITE, POSTGRES)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless enabled on every connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@dataclass
class StorageBackend:
    """A named database with its own engine and session factory."""

    name: str
    engine: Engine
    session_factory: sessionmaker = field(repr=False)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session, rolling back on error and always closing it."""
        db = self.session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def create_backend(name: str, url: str, echo: bool = False) -> StorageBackend:
    """Create a StorageBackend for the given database URL."""
    if not url:
        logger.error("No database URL configured for backend %s", name)
        raise RuntimeError(f"Database URL for backend '{name}' is not configured.")

    # enable pool_pre_ping to avoid stale/closed connections
    engine = create_engine(url, pool_pre_ping=True, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info("Initialized %s backend (dialect=%s)", name, engine.dialect.name)
    return StorageBackend(name=name, engine=engine, session_factory=session_factory)


def backends_from_settings(
    settings: Settings, names: Optional[List[str]] = None
) -> Dict[str, StorageBackend]:
    """Build the requested backends from application settings."""
    urls = {SQLITE: settings.SQLITE_URL, POSTGRES: settings.DATABASE_URL}
    selected = names or list(BACKEND_NAMES)
    unknown = [name for name in selected if name not in urls]
    if unknown:
        raise ValueError(f"Unknown backend(s): {', '.join(unknown)}")
    return {
        name: create_backend(name, urls[name], echo=settings.SQL_ECHO)
        for name in selected
    }
