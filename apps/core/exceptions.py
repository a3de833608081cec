"""
Billing error taxonomy.

Every failure raised by the billing core is a subclass of BillingError:
- ValidationError: caller-fixable input problems, surfaced verbatim
- NotFoundError: unknown book, invoice or customer reference
- InsufficientStockError: a sale would drive a book's stock below zero
- SequenceExhaustionError: the day's invoice counter overflowed
- PersistenceError: the database refused or aborted the transaction

Validation, not-found and stock errors are raised before any row is written.
Persistence errors are raised only after the enclosing transaction rolled back.
"""


class BillingError(Exception):
    """Base exception for billing errors."""

    pass


class ValidationError(BillingError):
    """Raised when a candidate invoice or line item is malformed."""

    pass


class NotFoundError(BillingError):
    """Raised when a referenced record does not exist."""

    def __init__(self, resource, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class InsufficientStockError(BillingError):
    """Raised when a book has fewer copies in stock than a sale requests."""

    def __init__(self, book_id, available, requested):
        self.book_id = book_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for book {book_id}. "
            f"Available: {available}, Requested: {requested}, "
            f"Shortage: {self.shortage}"
        )

    @property
    def shortage(self):
        return self.requested - self.available


class SequenceExhaustionError(BillingError):
    """Raised when a day's invoice counter has no numbers left."""

    def __init__(self, prefix, date_key):
        self.prefix = prefix
        self.date_key = date_key
        super().__init__(f"Invoice numbers exhausted for {prefix}-{date_key}")


class PersistenceError(BillingError):
    """
    Raised when a transaction could not be committed.

    The message is safe to show to callers; the underlying database error
    is chained as ``__cause__`` and logged, never surfaced.
    """

    def __init__(self, message="Could not save changes. Please try again.", retryable=False):
        self.retryable = retryable
        super().__init__(message)
