"""
Invoice storage and lookup.

Every header fetched here comes with its ordered line items in the same
logical read; callers never see an invoice without its items.
"""

import logging

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import Prefetch

from apps.core.exceptions import NotFoundError, ValidationError

from .models import Customer, Invoice, InvoiceItem

logger = logging.getLogger(__name__)


class InvoiceRepository:
    """Read/query access to invoices plus the write calls the coordinator drives."""

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    def _invoices(self):
        return (
            Invoice.objects.using(self.using)
            .select_related("customer", "cashier")
            .prefetch_related(
                Prefetch(
                    "items",
                    queryset=InvoiceItem.objects.using(self.using)
                    .select_related("book")
                    .order_by("position"),
                )
            )
        )

    def get_by_id(self, invoice_id):
        """
        Fetch an invoice and its line items by primary key.

        Raises:
            NotFoundError: If no such invoice exists
        """
        try:
            return self._invoices().get(pk=invoice_id)
        except (Invoice.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Invoice", invoice_id)

    def lock(self, invoice_id):
        """
        Row-lock an invoice header for the rest of the transaction, then fetch it.

        Raises:
            NotFoundError: If no such invoice exists
        """
        try:
            locked = (
                Invoice.objects.using(self.using)
                .select_for_update()
                .filter(pk=invoice_id)
                .values_list("pk", flat=True)
                .first()
            )
        except (ValueError, TypeError):
            locked = None
        if locked is None:
            raise NotFoundError("Invoice", invoice_id)
        return self.get_by_id(locked)

    def get_by_number(self, invoice_number):
        """
        Fetch an invoice and its line items by invoice number.

        Raises:
            NotFoundError: If no such invoice exists
        """
        try:
            return self._invoices().get(invoice_number=invoice_number)
        except Invoice.DoesNotExist:
            raise NotFoundError("Invoice", invoice_number)

    def list(self, customer_id=None):
        """
        All invoices, most recent first, optionally for one customer.

        Returns:
            List of invoices with their items loaded
        """
        queryset = self._invoices()
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        return list(queryset.order_by("-invoice_date", "-id"))

    def number_exists(self, invoice_number):
        return Invoice.objects.using(self.using).filter(invoice_number=invoice_number).exists()

    def get_customer(self, customer_id):
        """
        Resolve a customer id from the customer directory.

        Raises:
            NotFoundError: If no such customer exists
        """
        try:
            return Customer.objects.using(self.using).get(pk=customer_id)
        except Customer.DoesNotExist:
            raise NotFoundError("Customer", customer_id)

    def add(self, invoice, items):
        """
        Insert an invoice header and its line items.

        Must run inside the caller's transaction. Items are numbered by
        position in the order given.

        Returns:
            The saved invoice

        Raises:
            ValidationError: If another invoice already holds the number
        """
        try:
            with transaction.atomic(using=self.using):
                invoice.save(using=self.using, force_insert=True)
        except IntegrityError:
            if self.number_exists(invoice.invoice_number):
                logger.warning(f"Invoice number taken concurrently: {invoice.invoice_number}")
                raise ValidationError(f"Invoice number already exists: {invoice.invoice_number}")
            raise
        for position, item in enumerate(items, start=1):
            item.invoice = invoice
            item.position = position
        InvoiceItem.objects.using(self.using).bulk_create(items)
        return invoice

    def remove(self, invoice):
        """Delete an invoice; its line items go with it."""
        invoice_id = invoice.pk
        invoice.delete(using=self.using)
        logger.debug(f"Removed invoice {invoice_id}")
