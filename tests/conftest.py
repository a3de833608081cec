"""
Pytest configuration and fixtures for the bookshop point of sale.
"""

from decimal import Decimal

import pytest


@pytest.fixture
def api_client():
    """
    Fixture for Django REST framework API client.
    """
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def cashier(django_user_model):
    """
    Fixture for a cashier account (not staff).
    """
    return django_user_model.objects.create_user(
        username="cashier",
        email="cashier@example.com",
        password="testpass123",
        first_name="Asha",
        last_name="Perera",
    )


@pytest.fixture
def staff_user(django_user_model):
    """
    Fixture for an administrator allowed to delete invoices.
    """
    return django_user_model.objects.create_user(
        username="manager",
        email="manager@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def cashier_client(api_client, cashier):
    api_client.force_authenticate(user=cashier)
    return api_client


@pytest.fixture
def staff_client(api_client, staff_user):
    api_client.force_authenticate(user=staff_user)
    return api_client


@pytest.fixture
def make_book():
    """
    Factory for books; ISBNs are generated when not given.
    """
    from apps.inventory.models import Book

    counter = {"n": 0}

    def _make_book(title="Clean Code", price="25.00", stock=10, isbn=None, author=""):
        counter["n"] += 1
        return Book.objects.create(
            isbn=isbn or f"978000000{counter['n']:04d}",
            title=title,
            author=author,
            price=Decimal(price),
            stock_quantity=stock,
        )

    return _make_book


@pytest.fixture
def book(make_book):
    return make_book(title="Clean Code", price="25.00", stock=10)


@pytest.fixture
def customer():
    from apps.billing.models import Customer

    return Customer.objects.create(
        account_number="ACC-0001",
        name="Nimal Silva",
        address="12 Galle Road, Colombo",
        telephone="0771234567",
        email="nimal@example.com",
    )


@pytest.fixture
def invoice_service():
    from apps.billing.services import InvoiceService

    return InvoiceService()


@pytest.fixture
def make_candidate(cashier):
    """
    Factory for CandidateInvoice values issued by ``cashier``.

    ``lines`` are (book_id, quantity) or (book_id, quantity, unit_price,
    discount_percent) tuples.
    """

    from apps.billing.candidates import CandidateInvoice, CandidateItem

    def _make_candidate(*lines, **kwargs):
        items = []
        for line in lines:
            book_id, quantity = line[0], line[1]
            unit_price = Decimal(line[2]) if len(line) > 2 and line[2] is not None else None
            discount = Decimal(line[3]) if len(line) > 3 else Decimal("0")
            items.append(
                CandidateItem(
                    book_id=book_id,
                    quantity=quantity,
                    unit_price=unit_price,
                    discount_percent=discount,
                )
            )
        kwargs.setdefault("cashier_id", cashier.pk)
        return CandidateInvoice(items=items, **kwargs)

    return _make_candidate
