"""
Store boundary: translate driver failures into the error taxonomy and retry
transient ones.

Only the outermost logical operation on a session retries. A retry rolls the
session back, so retrying an inner step alone would silently drop the outer
operation's earlier writes.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import get_settings
from marketplace.core.errors import TransientError, ValidationError

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")

_ACTIVE_KEY = "marketplace.store_operation_active"


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.TimeoutError, asyncio.TimeoutError)):
        return True
    return isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated


@contextmanager
def translate_store_errors(resource: str = "record") -> Iterator[None]:
    """Map SQLAlchemy exceptions onto ValidationError / TransientError."""
    try:
        yield
    except sa_exc.IntegrityError as exc:
        raise ValidationError(f"{resource} violates a uniqueness or reference constraint") from exc
    except (sa_exc.SQLAlchemyError, asyncio.TimeoutError) as exc:
        if _is_transient(exc):
            raise TransientError() from exc
        raise


async def run_in_store(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    label: str = "store operation",
) -> T:
    """Run ``operation`` with bounded retry on TransientError."""
    if session.info.get(_ACTIVE_KEY):
        return await operation()

    attempts = max(1, settings.store_retry_attempts)
    session.info[_ACTIVE_KEY] = True
    try:
        for attempt in range(1, attempts + 1):
            try:
                with translate_store_errors():
                    return await operation()
            except TransientError:
                await session.rollback()
                if attempt == attempts:
                    logger.error("%s failed after %d attempts", label, attempt, extra={"attempt": attempt})
                    raise
                delay = settings.store_retry_backoff_ms * attempt / 1000
                logger.warning(
                    "%s hit a transient store error, retrying in %.2fs", label, delay, extra={"attempt": attempt}
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")
    finally:
        session.info.pop(_ACTIVE_KEY, None)
