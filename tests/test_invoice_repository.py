"""
Tests for invoice storage and lookup.
"""

from decimal import Decimal

from django.db import transaction

import pytest

from apps.billing.models import Invoice, InvoiceItem
from apps.billing.repository import InvoiceRepository
from apps.core.exceptions import NotFoundError, ValidationError


@pytest.fixture
def repository():
    return InvoiceRepository()


def build_invoice(cashier, number="INV-20240131-0001", **kwargs):
    values = {
        "invoice_number": number,
        "cashier": cashier,
        "subtotal": Decimal("30.00"),
        "total_amount": Decimal("30.00"),
    }
    values.update(kwargs)
    return Invoice(**values)


def build_item(book, quantity=1, unit_price="10.00"):
    unit_price = Decimal(unit_price)
    return InvoiceItem(
        book=book,
        quantity=quantity,
        unit_price=unit_price,
        total_price=unit_price * quantity,
        book_title=book.title,
        book_isbn=book.isbn,
    )


@pytest.mark.django_db
class TestInvoiceRepository:
    """Tests for InvoiceRepository."""

    def test_add_numbers_items_in_order(self, repository, cashier, make_book):
        first = make_book(title="First")
        second = make_book(title="Second")

        with transaction.atomic():
            invoice = repository.add(
                build_invoice(cashier), [build_item(second, 2), build_item(first, 1)]
            )

        items = list(InvoiceItem.objects.filter(invoice=invoice).order_by("position"))
        assert [(item.position, item.book_id) for item in items] == [(1, second.pk), (2, first.pk)]

    def test_get_by_id_loads_items(self, repository, cashier, make_book):
        book = make_book()
        with transaction.atomic():
            invoice = repository.add(
                build_invoice(cashier), [build_item(book, 1), build_item(book, 2)]
            )

        found = repository.get_by_id(invoice.pk)

        assert found.invoice_number == "INV-20240131-0001"
        assert [item.quantity for item in found.line_items] == [1, 2]

    def test_get_by_id_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.get_by_id(1234)

    def test_get_by_id_malformed(self, repository):
        with pytest.raises(NotFoundError):
            repository.get_by_id("not-a-number")

    def test_get_by_number(self, repository, cashier, book):
        with transaction.atomic():
            invoice = repository.add(build_invoice(cashier, "INV-20240131-0007"), [build_item(book)])

        assert repository.get_by_number("INV-20240131-0007").pk == invoice.pk
        assert repository.number_exists("INV-20240131-0007")
        assert not repository.number_exists("INV-20240131-0008")

    def test_list_filters_by_customer(self, repository, cashier, customer, book):
        with transaction.atomic():
            repository.add(build_invoice(cashier, "A-1", customer=customer), [build_item(book)])
            repository.add(build_invoice(cashier, "A-2"), [build_item(book)])

        assert [i.invoice_number for i in repository.list(customer_id=customer.pk)] == ["A-1"]
        assert len(repository.list()) == 2

    def test_add_duplicate_number(self, repository, cashier, book):
        with transaction.atomic():
            repository.add(build_invoice(cashier, "INV-20240131-0003"), [build_item(book)])

            with pytest.raises(ValidationError, match="already exists"):
                repository.add(build_invoice(cashier, "INV-20240131-0003"), [build_item(book)])

            # The outer transaction is still usable
            assert Invoice.objects.count() == 1
        assert InvoiceItem.objects.count() == 1

    def test_get_customer_missing(self, repository):
        with pytest.raises(NotFoundError, match="Customer not found: 77"):
            repository.get_customer(77)

    def test_lock_missing_invoice(self, repository):
        with pytest.raises(NotFoundError):
            with transaction.atomic():
                repository.lock(999)

    def test_remove_deletes_items(self, repository, cashier, book):
        with transaction.atomic():
            invoice = repository.add(build_invoice(cashier), [build_item(book), build_item(book)])
            repository.remove(repository.lock(invoice.pk))

        assert not Invoice.objects.exists()
        assert not InvoiceItem.objects.exists()
