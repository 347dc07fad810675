"""Bulk table operations used by the seeder and the benchmark."""
import logging
from typing import Any, Dict, Mapping, Sequence

from sqlalchemy import Table, delete, func, insert, select
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Maximum bind parameters a single statement may carry, per dialect.
MAX_BIND_PARAMETERS: Dict[str, int] = {
    "sqlite": 32766,
    "postgresql": 65535,
}
# Legacy SQLite limit, used for dialects we know nothing about.
DEFAULT_MAX_BIND_PARAMETERS = 999


def max_bind_parameters(dialect: str) -> int:
    return MAX_BIND_PARAMETERS.get(dialect, DEFAULT_MAX_BIND_PARAMETERS)


def max_rows_per_statement(dialect: str, column_count: int) -> int:
    """Largest number of rows a multi-row INSERT may hold on this dialect."""
    if column_count <= 0:
        raise ValueError("column_count must be positive")
    return max_bind_parameters(dialect) // column_count


def batch_insert(
    session: Session,
    table: Table,
    rows: Sequence[Mapping[str, Any]],
    chunk_size: int,
) -> int:
    """Insert ``rows`` as multi-row INSERT statements of at most ``chunk_size`` rows.

    Nothing is committed here; the caller owns the transaction.

    Returns:
        Number of rows written
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    written = 0
    for offset in range(0, len(rows), chunk_size):
        chunk = list(rows[offset : offset + chunk_size])
        session.execute(insert(table).values(chunk))
        written += len(chunk)
    logger.debug("Inserted %d rows into %s", written, table.name)
    return written


def clear_tables(session: Session, tables: Sequence[Table]) -> Dict[str, int]:
    """Delete every row of each table, in the given order."""
    deleted: Dict[str, int] = {}
    for table in tables:
        result = session.execute(delete(table))
        deleted[table.name] = result.rowcount
        logger.info("Deleted %d rows from %s", result.rowcount, table.name)
    return deleted


def count_rows(session: Session, table: Table) -> int:
    return session.execute(select(func.count()).select_from(table)).scalar_one()
