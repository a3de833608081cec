"""
Admin configuration for inventory models.
"""

from django.contrib import admin

from .models import Book


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    """Admin interface for Book."""

    list_display = ["isbn", "title", "author", "price", "stock_quantity", "updated_at"]
    search_fields = ["isbn", "title", "author"]
    readonly_fields = ["created_at", "updated_at"]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("isbn", "title", "author"),
            },
        ),
        (
            "Pricing & Stock",
            {
                "fields": ("price", "stock_quantity"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        # Opening stock is set on creation; afterwards only sales and reversals move it
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            readonly.append("stock_quantity")
        return readonly
