"""
Transaction scope for multi-statement billing operations.

Each logical operation acquires its own transaction through ``atomic_operation``.
The connection is owned by Django's per-thread connection handler, so nothing
here keeps a long-lived connection around between calls.
"""

import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, OperationalError, connections, transaction

from .exceptions import BillingError, PersistenceError

logger = logging.getLogger(__name__)


def apply_lock_timeout(using=DEFAULT_DB_ALIAS, timeout_ms=None):
    """
    Bound how long the current transaction waits for row locks.

    PostgreSQL honours a transaction-local ``lock_timeout``. SQLite waits on
    its connection-level busy timeout (``OPTIONS["timeout"]``) instead.
    """
    connection = connections[using]
    if connection.vendor != "postgresql":
        return

    if timeout_ms is None:
        timeout_ms = getattr(settings, "BILLING_LOCK_TIMEOUT_MS", 5000)

    with connection.cursor() as cursor:
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{int(timeout_ms)}ms"])


@contextmanager
def atomic_operation(operation, using=DEFAULT_DB_ALIAS, **context):
    """
    Run a block inside one database transaction.

    On any exception the transaction is rolled back before the exception
    leaves this context manager. Billing errors propagate unchanged;
    database errors are logged with ``context`` and re-raised as
    PersistenceError.

    Args:
        operation: Short name of the operation, used in log records
        using: Database alias
        **context: Extra identifiers to attach to the failure log

    Raises:
        PersistenceError: If the database rejected any statement or the commit
    """
    try:
        with transaction.atomic(using=using):
            apply_lock_timeout(using)
            yield
    except BillingError:
        raise
    except OperationalError as e:
        logger.error(
            f"{operation} failed (retryable): {e}",
            extra={"operation": operation, **context},
            exc_info=True,
        )
        raise PersistenceError(
            "The system is busy. Please retry the operation.", retryable=True
        ) from e
    except DatabaseError as e:
        logger.error(
            f"{operation} failed: {e}",
            extra={"operation": operation, **context},
            exc_info=True,
        )
        raise PersistenceError() from e
