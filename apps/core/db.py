"""
Store-call helpers shared by the Django repositories.

  read_with_retry(fn, deadline=...)  bounded retry for idempotent reads
  atomic_block(deadline=...)         transaction with a statement timeout

Writes are never retried here. A DatabaseError inside atomic_block surfaces
as DependencyError(outcome_unknown=True) and the caller re-reads state.
"""
import logging
import time
from contextlib import contextmanager

from django.conf import settings
from django.db import DatabaseError, IntegrityError, OperationalError, connection, transaction

from .clock import Deadline
from .exceptions import DependencyError, ErrorCode

logger = logging.getLogger(__name__)


def _check_deadline(deadline: Deadline | None) -> None:
    if deadline is not None and deadline.expired:
        raise DependencyError('Store deadline exceeded.', code=ErrorCode.DEADLINE_EXCEEDED)


def read_with_retry(fn, *args, deadline: Deadline | None = None, **kwargs):
    """
    Call an idempotent read, retrying OperationalError with linear backoff.

    No retry happens inside an open transaction (the transaction is already
    broken) or when the next sleep would run past the deadline.
    """
    attempts = max(1, settings.STORE_READ_ATTEMPTS)
    backoff = settings.STORE_RETRY_BACKOFF_SECONDS

    for attempt in range(1, attempts + 1):
        _check_deadline(deadline)
        try:
            return fn(*args, **kwargs)
        except OperationalError as exc:
            if attempt == attempts or connection.in_atomic_block:
                raise DependencyError('Store read failed.') from exc
            delay = backoff * attempt
            remaining = deadline.remaining() if deadline is not None else None
            if remaining is not None and delay >= remaining:
                raise DependencyError(
                    'Store deadline exceeded.', code=ErrorCode.DEADLINE_EXCEEDED,
                ) from exc
            logger.warning('Store read %s failed (attempt %d/%d): %s',
                           getattr(fn, '__name__', fn), attempt, attempts, exc)
            time.sleep(delay)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            raise DependencyError('Store read failed.') from exc


def _apply_statement_timeout(deadline: Deadline | None) -> None:
    if deadline is None or connection.vendor != 'postgresql':
        return
    remaining = deadline.remaining()
    if remaining is None:
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('statement_timeout', %s, true)",
            [str(max(1, int(remaining * 1000)))],
        )


@contextmanager
def atomic_block(deadline: Deadline | None = None):
    """
    transaction.atomic() bounded by `deadline`.

    IntegrityError propagates unchanged (callers treat it as a conflict);
    any other DatabaseError becomes DependencyError(outcome_unknown=True).
    """
    _check_deadline(deadline)
    outermost = not connection.in_atomic_block
    try:
        with transaction.atomic():
            if outermost:
                _apply_statement_timeout(deadline)
            yield
    except IntegrityError:
        raise
    except DatabaseError as exc:
        logger.error('Store write failed, outcome unknown: %s', exc)
        raise DependencyError(
            'Store write did not complete; outcome unknown.', outcome_unknown=True,
        ) from exc
