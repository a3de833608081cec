"""
URL configuration for billing app.
"""

from django.urls import path

from . import views

app_name = "billing"

urlpatterns = [
    # Invoice API
    path("api/invoices/", views.invoice_list, name="invoice_list"),
    path("api/invoices/preview/", views.invoice_preview, name="invoice_preview"),
    path("api/invoices/<int:invoice_id>/", views.invoice_detail, name="invoice_detail"),
    path(
        "api/invoices/number/<str:invoice_number>/",
        views.invoice_by_number,
        name="invoice_by_number",
    ),
    path("api/invoices/<int:invoice_id>/receipt/", views.invoice_receipt, name="invoice_receipt"),
    # Receipt Generation
    path("receipts/pdf/<int:invoice_id>/", views.receipt_pdf, name="receipt_pdf_standard"),
    path("receipts/pdf/<int:invoice_id>/<str:format_type>/", views.receipt_pdf, name="receipt_pdf"),
]
