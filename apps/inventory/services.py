"""
Stock adjustment for books.

InventoryStore is the only writer of ``Book.stock_quantity``. Every method runs
inside the caller's transaction; it never opens or commits one of its own.
"""

import logging

from django.db import DEFAULT_DB_ALIAS
from django.db.models import F
from django.utils import timezone

from apps.core.exceptions import InsufficientStockError, NotFoundError

from .models import Book

logger = logging.getLogger(__name__)


class InventoryStore:
    """
    Atomic access to book stock.

    Reads always go to the authoritative row; nothing is cached between calls.
    """

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    def _books(self):
        return Book.objects.using(self.using)

    def find_by_id(self, book_id):
        """
        Fetch a book by primary key.

        Raises:
            NotFoundError: If no such book exists
        """
        try:
            return self._books().get(pk=book_id)
        except Book.DoesNotExist:
            raise NotFoundError("Book", book_id)

    def lock_books(self, book_ids):
        """
        Fetch and row-lock the given books for the rest of the transaction.

        Rows are locked in primary-key order so that two sales touching the
        same books cannot deadlock each other.

        Args:
            book_ids: Iterable of book primary keys (duplicates allowed)

        Returns:
            Dict of book id -> Book

        Raises:
            NotFoundError: For the first id that has no book
        """
        wanted = sorted(set(book_ids))
        books = {
            book.pk: book
            for book in self._books().select_for_update().filter(pk__in=wanted).order_by("pk")
        }
        for book_id in wanted:
            if book_id not in books:
                raise NotFoundError("Book", book_id)
        return books

    def adjust(self, book_id, delta):
        """
        Change a book's stock by ``delta`` in a single guarded statement.

        Executes ``stock = stock + delta WHERE id = ? AND stock + delta >= 0``,
        so the non-negative guard holds even against a concurrent writer that
        changed the row after any earlier read.

        Args:
            book_id: Book primary key
            delta: Negative for a sale, positive for a reversal

        Raises:
            NotFoundError: If the book does not exist
            InsufficientStockError: If the adjustment would make stock negative
        """
        updated = (
            self._books()
            .filter(pk=book_id, stock_quantity__gte=-delta)
            .update(stock_quantity=F("stock_quantity") + delta, updated_at=timezone.now())
        )
        if updated == 1:
            logger.debug(f"Adjusted stock for book {book_id} by {delta}")
            return

        available = self._books().filter(pk=book_id).values_list("stock_quantity", flat=True).first()
        if available is None:
            raise NotFoundError("Book", book_id)
        raise InsufficientStockError(book_id, available, -delta)
