"""
Invoice services for the bookshop point of sale.

InvoiceService turns a validated CandidateInvoice into a persisted invoice
and reverses it again, keeping book stock and invoice numbering consistent
when several cashiers sell at once.

- create_invoice: validate, lock books, check stock, price, number, persist,
  deduct stock, all in one transaction
- preview_invoice: the same arithmetic with no stock check, no number and
  no writes
- delete_invoice: restore stock and remove the invoice in one transaction
"""

import logging
import time
from collections import OrderedDict
from decimal import Decimal

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS
from django.utils import timezone

from apps.core.db import atomic_operation
from apps.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from apps.inventory.services import InventoryStore

from .calculator import BillCalculator, PricedLine
from .models import Invoice, InvoiceItem
from .receipt_service import BillFormatter
from .repository import InvoiceRepository
from .sequence import SequenceGenerator, date_key_for

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Coordinates invoice creation, preview, reversal and lookup.

    Collaborators are injected so the coordinator can run against another
    database alias or against test doubles; each defaults to the standard
    implementation on ``using``.
    """

    def __init__(
        self,
        inventory=None,
        sequence=None,
        repository=None,
        calculator=None,
        formatter=None,
        using=DEFAULT_DB_ALIAS,
    ):
        self.using = using
        self.inventory = inventory or InventoryStore(using=using)
        self.sequence = sequence or SequenceGenerator(using=using)
        self.repository = repository or InvoiceRepository(using=using)
        self.calculator = calculator or BillCalculator()
        self.formatter = formatter or BillFormatter.from_settings()

    # Validation

    def _validate_candidate(self, candidate):
        """
        Reject malformed candidates before anything touches the database.

        Raises:
            ValidationError: On the first problem found
        """
        if not candidate.items:
            raise ValidationError("Invoice must contain at least one item")

        if candidate.cashier_id is None:
            raise ValidationError("Cashier is required")

        valid_methods = {choice for choice, _ in Invoice.PAYMENT_METHOD_CHOICES}
        if candidate.payment_method not in valid_methods:
            raise ValidationError(f"Unknown payment method: {candidate.payment_method}")

        for index, item in enumerate(candidate.items, start=1):
            if item.book_id is None:
                raise ValidationError(f"Item {index}: book is required")
            if isinstance(item.quantity, bool) or not isinstance(item.quantity, int):
                raise ValidationError(f"Item {index}: quantity must be a whole number")
            if item.quantity <= 0:
                raise ValidationError(f"Item {index}: quantity must be greater than zero")
            if item.discount_percent is None or not (
                Decimal("0") <= item.discount_percent <= Decimal("100")
            ):
                raise ValidationError(f"Item {index}: discount percent must be between 0 and 100")
            if item.unit_price is not None and item.unit_price < 0:
                raise ValidationError(f"Item {index}: unit price cannot be negative")

        if candidate.discount_amount is not None and candidate.discount_amount < 0:
            raise ValidationError("Discount amount cannot be negative")

    @staticmethod
    def _requested_quantities(candidate):
        """Total quantity requested per book, in first-seen order."""
        requested = OrderedDict()
        for item in candidate.items:
            requested[item.book_id] = requested.get(item.book_id, 0) + item.quantity
        return requested

    @staticmethod
    def _invoice_date(candidate):
        """Candidate date or now; naive dates are read in the default timezone."""
        invoice_date = candidate.invoice_date or timezone.now()
        if timezone.is_naive(invoice_date):
            invoice_date = timezone.make_aware(invoice_date)
        return invoice_date

    def _check_stock(self, books, requested):
        """
        Raises:
            InsufficientStockError: For the first book that cannot cover its quantity
        """
        for book_id, quantity in requested.items():
            book = books[book_id]
            if not book.can_deduct_quantity(quantity):
                logger.warning(
                    f"Rejected sale: book {book_id} has {book.stock_quantity} in stock, "
                    f"{quantity} requested"
                )
                raise InsufficientStockError(book_id, book.stock_quantity, quantity)

    # Commands

    def create_invoice(self, candidate):
        """
        Persist a new invoice and deduct its stock as one atomic unit.

        Args:
            candidate: CandidateInvoice

        Returns:
            The saved Invoice with its items loaded and the computed
            BillTotals attached as ``invoice.totals``

        Raises:
            ValidationError: Malformed candidate or duplicate invoice number
            NotFoundError: Unknown book or customer
            InsufficientStockError: A book cannot cover the requested quantity
            SequenceExhaustionError: No invoice numbers left for the day
            PersistenceError: The transaction could not be committed
        """
        self._validate_candidate(candidate)

        requested = self._requested_quantities(candidate)
        invoice_date = self._invoice_date(candidate)

        with atomic_operation(
            "create_invoice", using=self.using, cashier_id=candidate.cashier_id
        ):
            if candidate.invoice_number and self.repository.number_exists(candidate.invoice_number):
                raise ValidationError(f"Invoice number already exists: {candidate.invoice_number}")

            try:
                books = self.inventory.lock_books(requested.keys())
            except NotFoundError as e:
                logger.warning(f"Rejected sale: {e}")
                raise

            self._check_stock(books, requested)

            customer = None
            if candidate.customer_id is not None:
                customer = self.repository.get_customer(candidate.customer_id)

            lines = []
            items = []
            for item in candidate.items:
                book = books[item.book_id]
                unit_price = item.unit_price if item.unit_price is not None else book.price
                lines.append(PricedLine(item.quantity, unit_price, item.discount_percent))
                items.append(
                    InvoiceItem(
                        book=book,
                        quantity=item.quantity,
                        unit_price=unit_price,
                        discount_percent=item.discount_percent,
                        book_title=book.title,
                        book_isbn=book.isbn,
                    )
                )

            totals = self.calculator.calculate(
                lines,
                invoice_discount=candidate.discount_amount,
                apply_tax=candidate.apply_tax,
            )
            for invoice_item, line_total in zip(items, totals.line_totals):
                invoice_item.total_price = line_total

            invoice_number = candidate.invoice_number or self.sequence.next(
                date_key=date_key_for(invoice_date)
            )

            invoice = Invoice(
                invoice_number=invoice_number,
                customer=customer,
                cashier_id=candidate.cashier_id,
                invoice_date=invoice_date,
                subtotal=totals.subtotal,
                discount_amount=totals.discount_amount,
                tax_amount=totals.tax_amount,
                total_amount=totals.total,
                payment_method=candidate.payment_method,
                notes=candidate.notes,
            )
            self.repository.add(invoice, items)

            for invoice_item in items:
                self.inventory.adjust(invoice_item.book_id, -invoice_item.quantity)

        logger.info(
            f"Created invoice {invoice.invoice_number}: subtotal {totals.subtotal}, "
            f"discount {totals.discount_amount}, tax {totals.tax_amount}, total {totals.total}",
            extra={"invoice_id": invoice.pk, "cashier_id": candidate.cashier_id},
        )

        saved = self.repository.get_by_id(invoice.pk)
        saved.totals = totals
        return saved

    def preview_invoice(self, candidate):
        """
        Compute what an invoice would look like without saving anything.

        Unit prices must be supplied by the caller; books are not looked up,
        stock is not checked and no invoice number is consumed.

        Returns:
            An unsaved Invoice with draft items and ``invoice.totals``

        Raises:
            ValidationError: Malformed candidate or a line without a unit price
            NotFoundError: Unknown customer
        """
        self._validate_candidate(candidate)

        for index, item in enumerate(candidate.items, start=1):
            if item.unit_price is None:
                raise ValidationError(f"Item {index}: unit price is required for a preview")

        customer = None
        if candidate.customer_id is not None:
            customer = self.repository.get_customer(candidate.customer_id)

        totals = self.calculator.calculate(
            [PricedLine(i.quantity, i.unit_price, i.discount_percent) for i in candidate.items],
            invoice_discount=candidate.discount_amount,
            apply_tax=candidate.apply_tax,
        )

        preview_prefix = getattr(settings, "BILLING_PREVIEW_PREFIX", "PREVIEW")
        invoice = Invoice(
            invoice_number=candidate.invoice_number or f"{preview_prefix}-{int(time.time() * 1000)}",
            customer=customer,
            cashier_id=candidate.cashier_id,
            invoice_date=self._invoice_date(candidate),
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            total_amount=totals.total,
            payment_method=candidate.payment_method,
            notes=candidate.notes,
        )
        invoice.attach_draft_items(
            InvoiceItem(
                book_id=item.book_id,
                position=position,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_percent=item.discount_percent,
                total_price=line_total,
                book_title=item.book_title or f"Book #{item.book_id}",
            )
            for position, (item, line_total) in enumerate(
                zip(candidate.items, totals.line_totals), start=1
            )
        )
        invoice.totals = totals
        return invoice

    def delete_invoice(self, invoice_id):
        """
        Restore the stock an invoice took and delete it, as one atomic unit.

        If any stock reversal fails the invoice stays exactly as it was.

        Raises:
            NotFoundError: If no such invoice exists
            PersistenceError: The transaction could not be committed
        """
        with atomic_operation("delete_invoice", using=self.using, invoice_id=invoice_id):
            invoice = self.repository.lock(invoice_id)
            items = invoice.line_items
            for item in items:
                self.inventory.adjust(item.book_id, item.quantity)
            invoice_number = invoice.invoice_number
            self.repository.remove(invoice)

        logger.info(
            f"Deleted invoice {invoice_number} and restored stock for {len(items)} item(s)",
            extra={"invoice_id": invoice_id},
        )

    # Queries

    def get_invoice_by_id(self, invoice_id):
        return self.repository.get_by_id(invoice_id)

    def get_invoice_by_number(self, invoice_number):
        return self.repository.get_by_number(invoice_number)

    def list_invoices(self, customer_id=None):
        """Invoices most recent first, optionally only one customer's."""
        return self.repository.list(customer_id=customer_id)

    def render_receipt(self, invoice_id):
        """Printable fixed-width receipt text for a saved invoice."""
        return self.formatter.format(self.repository.get_by_id(invoice_id))
