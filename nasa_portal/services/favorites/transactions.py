"""Unit-of-work guard shared by the favorites and collections stores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from nasa_portal.services.errors import ConflictError, StorageError, StoreError

logger = logging.getLogger(__name__)


async def _rollback(session: AsyncSession, operation: str) -> None:
    """Roll back after a failure, tolerating a connection that already died."""

    try:
        await session.rollback()
    except SQLAlchemyError as exc:
        logger.warning("Rollback after failed %s also failed: %s", operation, exc)


@asynccontextmanager
async def storage_guard(session: AsyncSession, *, operation: str) -> AsyncIterator[None]:
    """Run a store operation so that it either fully applies or leaves no trace.

    Typed store errors pass through after the session is rolled back.  Database
    failures are rolled back and re-raised as :class:`StorageError` so callers
    can tell a retryable outage from a caller mistake.
    """

    try:
        yield
    except StoreError:
        await _rollback(session, operation)
        raise
    except IntegrityError as exc:
        await _rollback(session, operation)
        logger.warning("Constraint violation during %s: %s", operation, exc.orig)
        raise ConflictError("Conflicting write rejected by the database") from exc
    except (SQLAlchemyTimeoutError, asyncio.TimeoutError) as exc:
        await _rollback(session, operation)
        logger.error("Database timeout during %s: %s", operation, exc)
        raise StorageError(f"Database timed out during {operation}") from exc
    except (OperationalError, DBAPIError) as exc:
        await _rollback(session, operation)
        logger.error("Database failure during %s: %s", operation, exc)
        raise StorageError(f"Database unavailable during {operation}") from exc


__all__ = ["storage_guard"]
