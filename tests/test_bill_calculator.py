"""
Tests for bill calculation.

Covers line totals, half-up rounding, invoice discounts (including clamping
to the subtotal) and the flat tax rate.
"""

import logging
from decimal import Decimal

import pytest

from apps.billing.calculator import BillCalculator, PricedLine, round_money
from apps.core.exceptions import ValidationError


@pytest.fixture
def calculator():
    return BillCalculator(tax_rate=Decimal("0.05"))


class TestRoundMoney:
    """Rounding to the cent."""

    def test_rounds_half_up(self):
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        assert round_money(Decimal("2.675")) == Decimal("2.68")

    def test_keeps_two_places(self):
        assert round_money(Decimal("45")) == Decimal("45.00")
        assert str(round_money(Decimal("45"))) == "45.00"


class TestLineTotal:
    """Tests for a single line's total."""

    def test_discounted_line(self, calculator):
        assert calculator.line_total(2, Decimal("25.00"), Decimal("10")) == Decimal("45.00")

    def test_line_without_discount(self, calculator):
        assert calculator.line_total(3, Decimal("12.50"), Decimal("0")) == Decimal("37.50")

    def test_line_rounds_half_up(self, calculator):
        # 3 * 9.99 * 0.85 = 25.4745
        assert calculator.line_total(3, Decimal("9.99"), Decimal("15")) == Decimal("25.47")
        assert calculator.line_total(1, Decimal("0.125"), Decimal("0")) == Decimal("0.13")

    def test_full_discount_is_free(self, calculator):
        assert calculator.line_total(4, Decimal("19.99"), Decimal("100")) == Decimal("0.00")

    @pytest.mark.parametrize("percent", ["-1", "100.01", "150"])
    def test_discount_percent_out_of_range_rejected(self, calculator, percent):
        with pytest.raises(ValidationError, match="between 0 and 100"):
            calculator.line_total(1, Decimal("10.00"), Decimal(percent))

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, calculator, quantity):
        with pytest.raises(ValidationError):
            calculator.line_total(quantity, Decimal("10.00"), Decimal("0"))

    def test_negative_unit_price_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.line_total(1, Decimal("-0.01"), Decimal("0"))

    def test_float_price_rejected(self, calculator):
        with pytest.raises(ValidationError, match="exact decimal"):
            calculator.line_total(1, 10.1, Decimal("0"))


class TestCalculate:
    """Tests for whole-bill totals."""

    def test_discounted_item_with_tax(self, calculator):
        totals = calculator.calculate(
            [PricedLine(2, Decimal("25.00"), Decimal("10"))],
            apply_tax=True,
        )

        assert totals.line_totals == (Decimal("45.00"),)
        assert totals.subtotal == Decimal("45.00")
        assert totals.discount_amount == Decimal("0.00")
        assert totals.tax_amount == Decimal("2.25")
        assert totals.total == Decimal("47.25")
        assert totals.discount_clamped is False

    def test_invoice_discount_without_tax(self, calculator):
        totals = calculator.calculate(
            [PricedLine(2, Decimal("25.00"), Decimal("10"))],
            invoice_discount=Decimal("10.00"),
        )

        assert totals.subtotal == Decimal("45.00")
        assert totals.discount_amount == Decimal("10.00")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.total == Decimal("35.00")
        assert totals.discount_clamped is False

    def test_discount_above_subtotal_is_clamped_and_reported(self, calculator, caplog):
        with caplog.at_level(logging.WARNING, logger="apps.billing.calculator"):
            totals = calculator.calculate(
                [PricedLine(2, Decimal("25.00"), Decimal("10"))],
                invoice_discount=Decimal("60.00"),
            )

        assert totals.discount_amount == Decimal("45.00")
        assert totals.total == Decimal("0.00")
        assert totals.discount_clamped is True
        assert totals.requested_discount == Decimal("60.00")
        assert "clamped" in caplog.text

    def test_tax_is_charged_on_subtotal_not_discounted_amount(self, calculator):
        totals = calculator.calculate(
            [PricedLine(1, Decimal("100.00"))],
            invoice_discount=Decimal("20.00"),
            apply_tax=True,
        )

        assert totals.tax_amount == Decimal("5.00")
        assert totals.total == Decimal("85.00")

    def test_negative_invoice_discount_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate([PricedLine(1, Decimal("10.00"))], invoice_discount=Decimal("-1"))

    def test_multiple_lines_sum_exactly(self, calculator):
        lines = [PricedLine(1, Decimal("0.10")) for _ in range(3)]

        totals = calculator.calculate(lines)

        assert totals.subtotal == Decimal("0.30")

    def test_total_identity_holds(self, calculator):
        cases = [
            ([PricedLine(3, Decimal("19.99"), Decimal("12.5"))], Decimal("5.00"), True),
            ([PricedLine(1, Decimal("7.35")), PricedLine(2, Decimal("3.10"))], None, True),
            ([PricedLine(5, Decimal("1.00"))], Decimal("100.00"), True),
        ]
        for lines, discount, apply_tax in cases:
            totals = calculator.calculate(lines, invoice_discount=discount, apply_tax=apply_tax)
            assert totals.total == totals.subtotal - totals.discount_amount + totals.tax_amount
            assert totals.total >= 0
            assert totals.discount_amount <= totals.subtotal

    def test_same_input_same_output(self, calculator):
        lines = [PricedLine(2, Decimal("25.00"), Decimal("10"))]

        assert calculator.calculate(lines, Decimal("3.00"), True) == calculator.calculate(
            lines, Decimal("3.00"), True
        )

    def test_tax_rate_comes_from_settings(self, settings):
        settings.BILLING_TAX_RATE = Decimal("0.10")

        totals = BillCalculator().calculate([PricedLine(1, Decimal("50.00"))], apply_tax=True)

        assert totals.tax_amount == Decimal("5.00")
