"""
Inventory models for the bookshop.

The billing core only reads a book's price, title and ISBN and adjusts its
stock quantity; the rest of the catalogue lifecycle lives outside billing.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Book(models.Model):
    """
    A book on the shelf.

    ``stock_quantity`` is shared mutable state between concurrent sales. Once the
    book exists it is only changed through InventoryStore.adjust() (the admin
    shows it read-only), and the database check constraint keeps
    it from going negative even if application code is bypassed.
    """

    isbn = models.CharField(
        max_length=20,
        unique=True,
        help_text="International Standard Book Number",
    )

    title = models.CharField(
        max_length=255,
        help_text="Book title as printed on receipts",
    )

    author = models.CharField(
        max_length=255,
        blank=True,
        help_text="Author name(s)",
    )

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Current selling price",
    )

    stock_quantity = models.IntegerField(
        default=0,
        validators=[MinValueValidator(0)],
        help_text="Copies currently in stock",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the book was added to the catalogue",
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the book was last updated",
    )

    class Meta:
        db_table = "books"
        ordering = ["title"]
        verbose_name = "Book"
        verbose_name_plural = "Books"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="book_stock_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="book_price_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.isbn} - {self.title}"

    def is_out_of_stock(self):
        """Check if no copies are left."""
        return self.stock_quantity == 0

    def can_deduct_quantity(self, quantity):
        """Check if we can sell the specified quantity."""
        return self.stock_quantity >= quantity
