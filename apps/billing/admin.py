"""
Django admin configuration for billing models.

Invoices are read-only here: creating or deleting one must go through
InvoiceService so stock stays consistent.
"""

from django.contrib import admin

from .models import Customer, Invoice, InvoiceItem, InvoiceSequence


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    """Admin interface for Customer model."""

    list_display = ["account_number", "name", "telephone", "email", "created_at"]
    search_fields = ["account_number", "name", "telephone", "email"]
    readonly_fields = ["created_at"]


class InvoiceItemInline(admin.TabularInline):
    """Inline admin for InvoiceItem model."""

    model = InvoiceItem
    extra = 0
    can_delete = False
    fields = [
        "position",
        "book",
        "book_title",
        "quantity",
        "unit_price",
        "discount_percent",
        "total_price",
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Admin interface for Invoice model."""

    list_display = [
        "invoice_number",
        "customer",
        "cashier",
        "total_amount",
        "payment_method",
        "invoice_date",
    ]
    list_filter = ["payment_method", "invoice_date"]
    search_fields = ["invoice_number", "customer__account_number", "customer__name"]
    inlines = [InvoiceItemInline]
    fieldsets = [
        (
            "Invoice",
            {
                "fields": ["invoice_number", "customer", "cashier", "invoice_date", "payment_method"],
            },
        ),
        (
            "Totals",
            {
                "fields": ["subtotal", "discount_amount", "tax_amount", "total_amount"],
            },
        ),
        (
            "Notes",
            {
                "fields": ["notes", "created_at"],
            },
        ),
    ]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    """Admin interface for InvoiceSequence model."""

    list_display = ["prefix", "date_key", "last_value"]
    list_filter = ["prefix"]
    readonly_fields = ["prefix", "date_key", "last_value"]

    def has_add_permission(self, request):
        return False
