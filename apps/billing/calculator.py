"""
Bill calculation.

Pure money arithmetic shared by real invoices and previews. Every amount is a
``Decimal`` rounded half-up to the cent; floats are never involved.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from django.conf import settings

from apps.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
DEFAULT_TAX_RATE = Decimal("0.05")


def round_money(value) -> Decimal:
    """Round a monetary value to 2 decimal places, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name: str) -> Decimal:
    """Coerce ``value`` to Decimal, rejecting floats and garbage."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{field_name} must be an exact decimal, not a float")
    try:
        return Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{field_name} is not a valid number: {value!r}")


@dataclass(frozen=True)
class PricedLine:
    """Quantity, unit price and discount percent of one line, ready to total."""

    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = Decimal("0")


@dataclass(frozen=True)
class BillTotals:
    """
    Result of a bill calculation.

    ``discount_clamped`` reports that the requested invoice discount was
    larger than the subtotal and was reduced to it; ``requested_discount``
    keeps what the caller asked for.
    """

    line_totals: Tuple[Decimal, ...]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    discount_clamped: bool = False
    requested_discount: Decimal = ZERO


class BillCalculator:
    """
    Computes line totals, subtotal, discount, tax and grand total.

    Deterministic and side-effect-free: the same input always yields the same
    BillTotals, whether the bill is about to be saved or only previewed.
    """

    def __init__(self, tax_rate: Optional[Decimal] = None):
        """
        Args:
            tax_rate: Flat tax rate as a fraction (e.g. Decimal("0.05")).
                Defaults to ``settings.BILLING_TAX_RATE``.
        """
        if tax_rate is None:
            tax_rate = getattr(settings, "BILLING_TAX_RATE", DEFAULT_TAX_RATE)
        self.tax_rate = to_decimal(tax_rate, "tax_rate")

    def line_total(self, quantity: int, unit_price: Decimal, discount_percent: Decimal) -> Decimal:
        """
        Total for one line: unit_price * (1 - discount_percent / 100) * quantity.

        Raises:
            ValidationError: If quantity is not positive, the unit price is
                negative, or the discount percent is outside 0-100
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"Quantity must be a positive whole number, got {quantity!r}")

        unit_price = to_decimal(unit_price, "unit_price")
        if unit_price < 0:
            raise ValidationError(f"Unit price cannot be negative, got {unit_price}")

        discount_percent = to_decimal(discount_percent, "discount_percent")
        if discount_percent < 0 or discount_percent > HUNDRED:
            raise ValidationError(
                f"Discount percent must be between 0 and 100, got {discount_percent}"
            )

        return round_money(unit_price * (1 - discount_percent / HUNDRED) * quantity)

    def calculate(
        self,
        items: Iterable[PricedLine],
        invoice_discount: Optional[Decimal] = None,
        apply_tax: bool = False,
    ) -> BillTotals:
        """
        Calculate the totals of a bill.

        Args:
            items: Priced lines
            invoice_discount: Invoice-level discount amount (optional)
            apply_tax: Charge the flat tax rate on the subtotal

        Returns:
            BillTotals

        Raises:
            ValidationError: On a malformed line or a negative invoice discount
        """
        line_totals = tuple(
            self.line_total(item.quantity, item.unit_price, item.discount_percent)
            for item in items
        )
        subtotal = sum(line_totals, ZERO)

        requested = ZERO
        if invoice_discount is not None:
            requested = round_money(to_decimal(invoice_discount, "discount_amount"))
            if requested < 0:
                raise ValidationError(f"Discount amount cannot be negative, got {requested}")

        discount_amount = requested
        clamped = False
        if requested > subtotal:
            discount_amount = subtotal
            clamped = True
            logger.warning(
                f"Invoice discount {requested} exceeds subtotal {subtotal}; clamped to subtotal"
            )

        tax_amount = round_money(subtotal * self.tax_rate) if apply_tax else ZERO
        total = subtotal - discount_amount + tax_amount

        return BillTotals(
            line_totals=line_totals,
            subtotal=subtotal,
            discount_amount=discount_amount,
            tax_amount=tax_amount,
            total=total,
            discount_clamped=clamped,
            requested_discount=requested,
        )
