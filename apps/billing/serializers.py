"""
Serializers for the billing API.

Request serializers validate JSON into CandidateInvoice values; the billing
core never sees raw request data. Response serializers work for both saved
and previewed invoices.
"""

from decimal import Decimal

from rest_framework import serializers

from .candidates import CandidateInvoice, CandidateItem
from .models import Invoice, InvoiceItem


class InvoiceItemInputSerializer(serializers.Serializer):
    """One requested line."""

    book_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
    )
    discount_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        default=Decimal("0.00"),
        required=False,
    )
    book_title = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def to_candidate(self, data):
        return CandidateItem(
            book_id=data["book_id"],
            quantity=data["quantity"],
            unit_price=data.get("unit_price"),
            discount_percent=data.get("discount_percent", Decimal("0.00")),
            book_title=data.get("book_title") or None,
        )


class InvoiceCreateSerializer(serializers.Serializer):
    """
    Request body for creating or previewing an invoice.

    {
        "customer_id": 3 (optional, omit for walk-in),
        "invoice_number": "INV-20240131-0001" (optional, generated if absent),
        "items": [
            {
                "book_id": 1,
                "quantity": 2,
                "unit_price": "25.00" (optional on create, required on preview),
                "discount_percent": "10.00" (optional),
                "book_title": "..." (optional, preview display only)
            }
        ],
        "discount_amount": "5.00" (optional, invoice-level),
        "apply_tax": true (optional),
        "payment_method": "CASH|CARD|OTHER",
        "notes": ""
    }
    """

    customer_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    invoice_number = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True
    )
    items = InvoiceItemInputSerializer(many=True, allow_empty=False)
    discount_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
    )
    apply_tax = serializers.BooleanField(default=False, required=False)
    payment_method = serializers.ChoiceField(
        choices=Invoice.PAYMENT_METHOD_CHOICES, default=Invoice.CASH, required=False
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def to_candidate(self, cashier):
        """Build the CandidateInvoice for ``cashier`` from validated data."""
        data = self.validated_data
        item_serializer = InvoiceItemInputSerializer()
        return CandidateInvoice(
            cashier_id=cashier.pk,
            items=[item_serializer.to_candidate(item) for item in data["items"]],
            customer_id=data.get("customer_id"),
            invoice_number=data.get("invoice_number") or None,
            discount_amount=data.get("discount_amount"),
            apply_tax=data.get("apply_tax", False),
            payment_method=data.get("payment_method", Invoice.CASH),
            notes=data.get("notes", ""),
        )


class InvoiceItemDetailSerializer(serializers.ModelSerializer):
    """Line item as shown to callers."""

    book_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = InvoiceItem
        fields = [
            "position",
            "book_id",
            "book_title",
            "book_isbn",
            "quantity",
            "unit_price",
            "discount_percent",
            "total_price",
        ]


class InvoiceDetailSerializer(serializers.ModelSerializer):
    """Serializer for invoice details, saved or previewed."""

    items = serializers.SerializerMethodField()
    customer_name = serializers.CharField(source="get_customer_display_name", read_only=True)
    cashier_name = serializers.CharField(source="get_cashier_display_name", read_only=True)
    discount_clamped = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer",
            "customer_name",
            "cashier",
            "cashier_name",
            "invoice_date",
            "items",
            "subtotal",
            "discount_amount",
            "discount_clamped",
            "tax_amount",
            "total_amount",
            "payment_method",
            "notes",
        ]

    def get_items(self, obj):
        return InvoiceItemDetailSerializer(obj.line_items, many=True).data

    def get_discount_clamped(self, obj):
        """Only known right after a calculation; False for stored invoices."""
        totals = getattr(obj, "totals", None)
        return bool(totals and totals.discount_clamped)


class InvoiceListSerializer(serializers.ModelSerializer):
    """Serializer for invoice list."""

    customer_name = serializers.CharField(source="get_customer_display_name", read_only=True)
    cashier_name = serializers.CharField(source="get_cashier_display_name", read_only=True)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer_name",
            "cashier_name",
            "invoice_date",
            "total_amount",
            "payment_method",
            "items_count",
        ]

    def get_items_count(self, obj):
        return len(obj.line_items)
