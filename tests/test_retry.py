"""
Store retry tests - transient failures are retried a bounded number of times.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from marketplace.config import get_settings
from marketplace.core.errors import TransientError, ValidationError
from marketplace.db.retry import run_in_store, translate_store_errors


def _timeout() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection timed out"))


class Flaky:
    """Fails ``failures`` times, then returns "ok"."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise _timeout()
        return "ok"


@pytest.mark.asyncio
async def test_transient_failure_is_retried(session):
    op = Flaky(failures=2)
    assert await run_in_store(session, op) == "ok"
    assert op.calls == 3


@pytest.mark.asyncio
async def test_retries_are_bounded(session):
    op = Flaky(failures=100)
    with pytest.raises(TransientError):
        await run_in_store(session, op)
    assert op.calls == get_settings().store_retry_attempts
    assert not session.info


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried(session):
    calls = []

    async def op():
        calls.append(1)
        raise ValidationError.for_field("title", "can't be blank")

    with pytest.raises(ValidationError):
        await run_in_store(session, op)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_only_outermost_operation_retries(session):
    inner = Flaky(failures=1)
    outer_calls = []

    async def outer():
        outer_calls.append(1)
        return await run_in_store(session, inner)

    assert await run_in_store(session, outer) == "ok"
    assert len(outer_calls) == 2
    assert inner.calls == 2


def test_integrity_error_becomes_validation_error():
    with pytest.raises(ValidationError) as exc:
        with translate_store_errors("User"):
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
    assert "User" in exc.value.message


def test_operational_error_becomes_transient():
    with pytest.raises(TransientError):
        with translate_store_errors():
            raise _timeout()
