"""
Typed input accepted by the billing core.

The API layer validates request bodies into these values; the core never
reads raw request data.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True)
class CandidateItem:
    """One requested line: which book, how many, and optionally at what price."""

    book_id: int
    quantity: int
    unit_price: Optional[Decimal] = None
    discount_percent: Decimal = Decimal("0")
    # Display title for previews of books that may not be stored yet
    book_title: Optional[str] = None


@dataclass(frozen=True)
class CandidateInvoice:
    """A bill the cashier wants to issue (or preview)."""

    cashier_id: int
    items: Tuple[CandidateItem, ...] = field(default_factory=tuple)
    customer_id: Optional[int] = None
    invoice_number: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    apply_tax: bool = False
    payment_method: str = "CASH"
    notes: str = ""
    invoice_date: Optional[datetime] = None

    def __post_init__(self):
        # Accept any iterable of items but store an immutable tuple
        object.__setattr__(self, "items", tuple(self.items))
