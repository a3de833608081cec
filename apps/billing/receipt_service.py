"""
Receipt generation for the bookshop POS.

- BillFormatter renders an invoice (saved or previewed) as fixed-width text
- ReceiptGenerator lays that text out as a PDF, on A4 or 80mm thermal paper
- ReceiptService picks the output for a format/output pair
"""

import io
import logging
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.platypus import Preformatted, SimpleDocTemplate

logger = logging.getLogger(__name__)

RECEIPT_WIDTH = 50
TITLE_WIDTH = 22
DATE_FORMAT = "%Y-%m-%d %I:%M:%S %p"


def format_amount(value) -> str:
    return f"{Decimal(value):.2f}"


class BillFormatter:
    """
    Fixed-width text receipt.

    Rendering is pure: it reads the invoice and its line items and never
    changes them. Dates always print in one display timezone, so the same
    invoice prints the same wherever the server runs.
    """

    def __init__(self, shop_name="BOOKSHOP", display_timezone="Asia/Kolkata", tax_rate=Decimal("0.05")):
        self.shop_name = shop_name
        self.display_timezone = ZoneInfo(display_timezone)
        self.tax_rate = Decimal(str(tax_rate))

    @classmethod
    def from_settings(cls):
        return cls(
            shop_name=getattr(settings, "BILLING_SHOP_NAME", "BOOKSHOP"),
            display_timezone=getattr(settings, "BILLING_DISPLAY_TIMEZONE", "Asia/Kolkata"),
            tax_rate=getattr(settings, "BILLING_TAX_RATE", Decimal("0.05")),
        )

    def format_date(self, moment):
        if moment is None:
            return "N/A"
        if timezone.is_naive(moment):
            moment = timezone.make_aware(moment)
        return moment.astimezone(self.display_timezone).strftime(DATE_FORMAT)

    @property
    def tax_label(self):
        percent = (self.tax_rate * 100).normalize()
        return f"Tax ({percent:f}%):"

    @staticmethod
    def unique_items(items):
        """Drop repeated lines for the same book, keeping the first."""
        seen = set()
        unique = []
        for item in items:
            if item.book_id in seen:
                continue
            seen.add(item.book_id)
            unique.append(item)
        return unique

    @staticmethod
    def _fit_title(title):
        if len(title) > TITLE_WIDTH:
            return title[:TITLE_WIDTH] + "."
        return title

    def _item_line(self, item):
        title = self._fit_title(item.book_title or f"Book #{item.book_id}")
        return (
            f"{title:<23} {item.quantity:>4} "
            f"{format_amount(item.unit_price):>10}  {format_amount(item.total_price):>8}"
        )

    @staticmethod
    def _total_line(label, amount):
        return f"{label:<33}{format_amount(amount):>8}"

    def format(self, invoice) -> str:
        """
        Render ``invoice`` as receipt text.

        Args:
            invoice: Saved or previewed Invoice

        Returns:
            Receipt text, newline-terminated
        """
        rule = "=" * RECEIPT_WIDTH
        thin_rule = "-" * RECEIPT_WIDTH

        lines = [
            rule,
            self.shop_name.center(RECEIPT_WIDTH),
            rule,
            "",
            f"Invoice #: {invoice.invoice_number}",
            f"Date: {self.format_date(invoice.invoice_date)}",
            f"Customer: {invoice.get_customer_display_name()}",
            f"Cashier: {invoice.get_cashier_display_name()}",
            f"Payment: {invoice.get_payment_method_display()}",
            "",
            thin_rule,
            f"{'Item':<23} {'Qty':>4} {'Price':>10}  {'Total':>8}",
            thin_rule,
        ]

        lines.extend(self._item_line(item) for item in self.unique_items(invoice.line_items))

        lines.append(thin_rule)
        lines.append(self._total_line("Subtotal:", invoice.subtotal))
        if invoice.discount_amount > 0:
            lines.append(self._total_line("Discount:", invoice.discount_amount))
        if invoice.tax_amount > 0:
            lines.append(self._total_line(self.tax_label, invoice.tax_amount))
        lines.append(self._total_line("TOTAL:", invoice.total_amount))
        lines.extend(
            [
                rule,
                "Thank You For Your Purchase".center(RECEIPT_WIDTH),
                rule,
            ]
        )

        return "\n".join(lines) + "\n"


class ReceiptGenerator:
    """
    PDF receipt for an invoice.

    Supports:
    - Thermal printer format (80mm width)
    - Standard receipt format (A4)
    """

    # Receipt dimensions
    THERMAL_WIDTH = 80 * mm

    # Margins
    THERMAL_MARGIN = 3 * mm
    STANDARD_MARGIN = 20 * mm

    def __init__(self, invoice, formatter=None):
        self.invoice = invoice
        self.formatter = formatter or BillFormatter.from_settings()
        self.styles = getSampleStyleSheet()

        self._create_custom_styles()

    def _create_custom_styles(self):
        """Monospace styles so the text receipt keeps its columns."""
        self.standard_style = ParagraphStyle(
            "ReceiptStandard",
            parent=self.styles["Code"],
            fontName="Courier",
            fontSize=10,
            leading=12,
            textColor=colors.black,
        )

        # 50 Courier columns at 6pt fit within 80mm paper
        self.thermal_style = ParagraphStyle(
            "ReceiptThermal",
            parent=self.styles["Code"],
            fontName="Courier",
            fontSize=6,
            leading=7.5,
            textColor=colors.black,
        )

    def generate_pdf_receipt(self, format_type: str = "standard") -> bytes:
        """
        Generate PDF receipt.

        Args:
            format_type: 'standard' for A4, 'thermal' for 80mm thermal paper

        Returns:
            PDF bytes
        """
        text = self.formatter.format(self.invoice)
        buffer = io.BytesIO()

        if format_type == "thermal":
            line_count = text.count("\n") + 1
            height = max(4 * inch, line_count * self.thermal_style.leading + 2 * self.THERMAL_MARGIN + inch)
            doc = SimpleDocTemplate(
                buffer,
                pagesize=(self.THERMAL_WIDTH, height),
                rightMargin=self.THERMAL_MARGIN,
                leftMargin=self.THERMAL_MARGIN,
                topMargin=self.THERMAL_MARGIN,
                bottomMargin=self.THERMAL_MARGIN,
            )
            style = self.thermal_style
        else:
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                rightMargin=self.STANDARD_MARGIN,
                leftMargin=self.STANDARD_MARGIN,
                topMargin=self.STANDARD_MARGIN,
                bottomMargin=self.STANDARD_MARGIN,
            )
            style = self.standard_style

        doc.title = f"Receipt {self.invoice.invoice_number}"
        doc.build([Preformatted(text, style)])
        pdf_bytes = buffer.getvalue()
        buffer.close()

        return pdf_bytes


class ReceiptService:
    """High-level entry point for receipt output."""

    FORMATS = ("standard", "thermal")

    @staticmethod
    def generate_receipt(invoice, format_type: str = "standard", output_format: str = "pdf") -> bytes:
        """
        Generate receipt for an invoice.

        Args:
            invoice: Invoice instance
            format_type: 'standard' or 'thermal'
            output_format: 'pdf' or 'text'

        Returns:
            Receipt bytes (PDF, or UTF-8 text)
        """
        if format_type not in ReceiptService.FORMATS:
            raise ValueError(f"Unsupported receipt format: {format_type}")

        if output_format == "pdf":
            pdf_bytes = ReceiptGenerator(invoice).generate_pdf_receipt(format_type)
            logger.debug(f"Generated {format_type} PDF receipt for {invoice.invoice_number}")
            return pdf_bytes
        elif output_format == "text":
            return BillFormatter.from_settings().format(invoice).encode("utf-8")
        else:
            raise ValueError(f"Unsupported output format: {output_format}")
