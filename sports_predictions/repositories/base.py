"""
Shared plumbing for the repositories: store-error translation and the
dialect-native INSERT construct used for conflict-as-success creates.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.errors import StorageError
from sports_predictions.core.logger import setup_logger

logger = setup_logger("sports_predictions.repositories")

_INSERT_CONSTRUCTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def upsert_insert(session: AsyncSession, model):
    """
    Return the dialect's INSERT construct for `model`, which supports
    ON CONFLICT DO NOTHING.
    """
    dialect = session.bind.dialect.name
    try:
        return _INSERT_CONSTRUCTS[dialect](model)
    except KeyError:
        raise StorageError(f"Conditional insert is not supported on dialect {dialect!r}")


def is_unique_violation(error: IntegrityError) -> bool:
    """PostgreSQL reports SQLSTATE 23505; SQLite only says so in the message."""
    if getattr(error.orig, "sqlstate", None) == "23505":
        return True
    return "UNIQUE constraint failed" in str(error.orig)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """
    Re-raise any store failure inside the block as StorageError, keeping the
    original exception as the cause.
    """
    try:
        yield
    except IntegrityError as e:
        logger.error(f"Constraint violation while {action}: {e.orig}")
        raise StorageError(
            f"Constraint violation while {action}",
            cause=e,
            unique_violation=is_unique_violation(e),
        ) from e
    except (SQLAlchemyError, OSError) as e:
        # OSError covers refused connections and asyncio timeouts from the driver
        logger.error(f"Database error while {action}: {str(e)}")
        raise StorageError(f"Database error while {action}", cause=e) from e
