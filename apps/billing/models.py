"""
Billing models for the bookshop point of sale.

- Customer: optional buyer attached to an invoice (absent for walk-in sales)
- Invoice: persisted bill header with computed totals
- InvoiceItem: one book line within an invoice, with price captured at sale time
- InvoiceSequence: per-day counter backing human-readable invoice numbers

An invoice owns its items; deleting the invoice deletes them. Books and
customers are referenced, never owned.
"""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from apps.inventory.models import Book

WALK_IN_CUSTOMER = "Walk-in Customer"


class Customer(models.Model):
    """Customer directory entry used to label invoices and receipts."""

    account_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Customer account number",
    )

    name = models.CharField(
        max_length=255,
        help_text="Customer's display name",
    )

    address = models.TextField(blank=True)

    telephone = models.CharField(max_length=20, blank=True)

    email = models.EmailField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "customers"
        ordering = ["name"]
        verbose_name = "Customer"
        verbose_name_plural = "Customers"

    def __str__(self):
        return f"{self.account_number} - {self.name}"


class Invoice(models.Model):
    """
    A committed (or previewed) bill.

    Invariants enforced by the calculator and backed by check constraints:
    - total_amount = subtotal - discount_amount + tax_amount
    - every monetary field is non-negative
    - discount_amount <= subtotal

    The invoice number and totals never change after the invoice is saved.
    Unsaved (preview) invoices carry their line items in memory; see
    ``attach_draft_items``.
    """

    CASH = "CASH"
    CARD = "CARD"
    OTHER = "OTHER"

    PAYMENT_METHOD_CHOICES = [
        (CASH, "Cash"),
        (CARD, "Card"),
        (OTHER, "Other"),
    ]

    invoice_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-readable number (e.g., 'INV-20240131-0001')",
    )

    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
        help_text="Customer who made the purchase (empty for walk-in sales)",
    )

    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="invoices_issued",
        help_text="Cashier who issued the invoice",
    )

    invoice_date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the sale took place",
    )

    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Sum of line totals",
    )

    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Invoice-level discount, never more than the subtotal",
    )

    tax_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Tax charged on the subtotal",
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Total amount (subtotal - discount + tax)",
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default=CASH,
    )

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "invoices"
        ordering = ["-invoice_date", "-id"]
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        indexes = [
            models.Index(fields=["customer", "-invoice_date"], name="inv_cust_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(subtotal__gte=0)
                & Q(discount_amount__gte=0)
                & Q(tax_amount__gte=0)
                & Q(total_amount__gte=0),
                name="invoice_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(discount_amount__lte=F("subtotal")),
                name="invoice_discount_within_subtotal",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.total_amount}"

    def attach_draft_items(self, items):
        """Keep unsaved line items on an unsaved invoice (previews)."""
        self._draft_items = list(items)

    @property
    def line_items(self):
        """Line items in invoice order, whether drafted in memory or persisted."""
        draft = getattr(self, "_draft_items", None)
        if draft is not None:
            return list(draft)
        if self.pk is None:
            return []
        return list(self.items.all())

    @property
    def is_preview(self):
        return self.pk is None

    def get_customer_display_name(self):
        customer = self.customer
        if customer is None:
            return WALK_IN_CUSTOMER
        return customer.name

    def get_cashier_display_name(self):
        try:
            cashier = self.cashier
        except ObjectDoesNotExist:
            return f"User #{self.cashier_id}"
        return cashier.get_full_name() or cashier.get_username()


class InvoiceItem(models.Model):
    """
    One book line within an invoice.

    ``unit_price`` is captured at sale time and is independent of later
    changes to the book's price. ``total_price`` is always derived from
    quantity, unit price and discount percent by the bill calculator.
    """

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )

    book = models.ForeignKey(
        Book,
        on_delete=models.PROTECT,
        related_name="invoice_items",
    )

    position = models.PositiveIntegerField(
        help_text="1-based line order within the invoice",
    )

    quantity = models.IntegerField(
        validators=[MinValueValidator(1)],
    )

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Unit price at time of sale",
    )

    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="unit_price * (1 - discount_percent / 100) * quantity",
    )

    # Snapshot for display; survives later catalogue edits
    book_title = models.CharField(max_length=255)
    book_isbn = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = "invoice_items"
        ordering = ["position"]
        verbose_name = "Invoice Item"
        verbose_name_plural = "Invoice Items"
        constraints = [
            models.UniqueConstraint(
                fields=["invoice", "position"], name="invoice_item_unique_position"
            ),
            models.CheckConstraint(condition=Q(quantity__gt=0), name="invoice_item_quantity_positive"),
            models.CheckConstraint(
                condition=Q(discount_percent__gte=0) & Q(discount_percent__lte=100),
                name="invoice_item_discount_percent_range",
            ),
        ]

    def __str__(self):
        return f"{self.book_title} x {self.quantity}"


class InvoiceSequence(models.Model):
    """
    Counter for one invoice-number prefix on one calendar day.

    ``last_value`` is only changed by a single UPDATE ... SET last_value =
    last_value + 1 statement, so concurrent cashiers can never be handed the
    same number.
    """

    prefix = models.CharField(max_length=20)

    date_key = models.CharField(
        max_length=8,
        help_text="Calendar day as YYYYMMDD",
    )

    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "invoice_sequences"
        constraints = [
            models.UniqueConstraint(
                fields=["prefix", "date_key"], name="invoice_sequence_unique_day"
            ),
        ]

    def __str__(self):
        return f"{self.prefix}-{self.date_key}: {self.last_value}"
