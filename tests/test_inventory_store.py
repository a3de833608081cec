"""
Tests for book stock adjustment.
"""

from django.db import IntegrityError, transaction

import pytest

from apps.core.exceptions import InsufficientStockError, NotFoundError
from apps.inventory.models import Book
from apps.inventory.services import InventoryStore


@pytest.fixture
def store():
    return InventoryStore()


@pytest.mark.django_db
class TestAdjust:
    """Tests for the guarded stock update."""

    def test_sale_decrements_stock(self, store, book):
        store.adjust(book.pk, -3)

        book.refresh_from_db()
        assert book.stock_quantity == 7

    def test_reversal_increments_stock(self, store, book):
        store.adjust(book.pk, 4)

        book.refresh_from_db()
        assert book.stock_quantity == 14

    def test_selling_exact_stock_leaves_zero(self, store, book):
        store.adjust(book.pk, -10)

        book.refresh_from_db()
        assert book.stock_quantity == 0
        assert book.is_out_of_stock()

    def test_overdraw_rejected_and_stock_unchanged(self, store, make_book):
        book = make_book(title="Refactoring", stock=3)

        with pytest.raises(InsufficientStockError) as exc_info:
            store.adjust(book.pk, -5)

        assert exc_info.value.book_id == book.pk
        assert exc_info.value.available == 3
        assert exc_info.value.requested == 5
        assert exc_info.value.shortage == 2
        book.refresh_from_db()
        assert book.stock_quantity == 3

    def test_unknown_book(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.adjust(999999, -1)

        assert exc_info.value.resource == "Book"
        assert exc_info.value.identifier == 999999

    def test_database_rejects_negative_stock(self, book):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Book.objects.filter(pk=book.pk).update(stock_quantity=-1)


@pytest.mark.django_db
class TestLookup:
    """Tests for reading and locking books."""

    def test_find_by_id(self, store, book):
        assert store.find_by_id(book.pk) == book

    def test_find_missing_book(self, store):
        with pytest.raises(NotFoundError, match="Book not found: 424242"):
            store.find_by_id(424242)

    def test_lock_books_returns_each_book_once(self, store, make_book):
        first = make_book(title="Dune")
        second = make_book(title="Emma")

        with transaction.atomic():
            books = store.lock_books([second.pk, first.pk, second.pk])

        assert set(books) == {first.pk, second.pk}
        assert books[first.pk].title == "Dune"

    def test_lock_books_missing_id(self, store, book):
        with pytest.raises(NotFoundError):
            with transaction.atomic():
                store.lock_books([book.pk, 555555])


@pytest.mark.django_db
class TestBookAdmin:
    """Stock is editable only when a book is first added."""

    def test_stock_read_only_for_existing_book(self, rf, book):
        from django.contrib import admin

        book_admin = admin.site._registry[Book]

        assert "stock_quantity" in book_admin.get_readonly_fields(rf.get("/"), book)
        assert "stock_quantity" not in book_admin.get_readonly_fields(rf.get("/"))
