"""
Views for billing.

- Invoice list/create, preview, detail/delete and lookup by number
- Printable text receipts and PDF receipts (standard and thermal)

Billing errors are mapped onto HTTP responses in one place; database details
never reach the client.
"""

import logging

from django.http import Http404, HttpResponse
from django.views.decorators.http import require_http_methods

from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.exceptions import (
    BillingError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    SequenceExhaustionError,
    ValidationError,
)
from apps.core.permissions import IsStaffForDelete

from .receipt_service import ReceiptService
from .serializers import InvoiceCreateSerializer, InvoiceDetailSerializer, InvoiceListSerializer
from .services import InvoiceService

logger = logging.getLogger(__name__)


def get_invoice_service():
    return InvoiceService()


def billing_error_response(error: BillingError) -> Response:
    """Translate a billing error into an API response."""
    if isinstance(error, ValidationError):
        return Response({"detail": str(error)}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(error, NotFoundError):
        return Response({"detail": str(error)}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(error, InsufficientStockError):
        return Response(
            {
                "detail": str(error),
                "book_id": error.book_id,
                "available": error.available,
                "requested": error.requested,
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(error, PersistenceError):
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if error.retryable
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return Response({"detail": str(error), "retryable": error.retryable}, status=code)

    if isinstance(error, SequenceExhaustionError):
        logger.error(f"Invoice numbering failed: {error}")
        return Response(
            {"detail": "Could not allocate an invoice number."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.error(f"Unhandled billing error: {error}", exc_info=True)
    return Response({"detail": "Internal error."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


# Invoice API


@api_view(["GET", "POST"])
@permission_classes([permissions.IsAuthenticated])
def invoice_list(request):
    """
    GET: list invoices, most recent first (``?customer=<id>`` to filter).
    POST: create an invoice for the signed-in cashier.

    See InvoiceCreateSerializer for the request body.
    """
    service = get_invoice_service()

    if request.method == "GET":
        customer_id = request.query_params.get("customer")
        if customer_id is not None:
            try:
                customer_id = int(customer_id)
            except ValueError:
                return Response(
                    {"detail": "customer must be an integer id."},
                    status=status.HTTP_400_BAD_REQUEST,
                )
        invoices = service.list_invoices(customer_id=customer_id)
        return Response({"results": InvoiceListSerializer(invoices, many=True).data})

    serializer = InvoiceCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        invoice = service.create_invoice(serializer.to_candidate(request.user))
    except BillingError as e:
        return billing_error_response(e)

    return Response(InvoiceDetailSerializer(invoice).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def invoice_preview(request):
    """
    Compute an invoice without saving it.

    Returns the invoice as it would be created plus its printable receipt.
    Every item needs an explicit unit_price.
    """
    serializer = InvoiceCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    service = get_invoice_service()
    try:
        invoice = service.preview_invoice(serializer.to_candidate(request.user))
    except BillingError as e:
        return billing_error_response(e)

    data = InvoiceDetailSerializer(invoice).data
    data["receipt"] = service.formatter.format(invoice)
    return Response(data, status=status.HTTP_200_OK)


@api_view(["GET", "DELETE"])
@permission_classes([IsStaffForDelete])
def invoice_detail(request, invoice_id):
    """
    GET: invoice with its items.
    DELETE: restore stock and remove the invoice (staff only).
    """
    service = get_invoice_service()

    try:
        if request.method == "DELETE":
            service.delete_invoice(invoice_id)
            return Response(status=status.HTTP_204_NO_CONTENT)

        invoice = service.get_invoice_by_id(invoice_id)
    except BillingError as e:
        return billing_error_response(e)

    return Response(InvoiceDetailSerializer(invoice).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def invoice_by_number(request, invoice_number):
    """Look an invoice up by its human-readable number."""
    try:
        invoice = get_invoice_service().get_invoice_by_number(invoice_number)
    except BillingError as e:
        return billing_error_response(e)

    return Response(InvoiceDetailSerializer(invoice).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def invoice_receipt(request, invoice_id):
    """Printable fixed-width receipt text."""
    try:
        text = get_invoice_service().render_receipt(invoice_id)
    except BillingError as e:
        return billing_error_response(e)

    return Response({"invoice_id": invoice_id, "receipt": text})


# Receipt Generation


@require_http_methods(["GET"])
def receipt_pdf(request, invoice_id, format_type="standard"):
    """
    Generate PDF receipt for download.

    Args:
        invoice_id: Invoice primary key
        format_type: 'standard' or 'thermal'
    """
    if not request.user.is_authenticated:
        return HttpResponse(status=401)

    if format_type not in ReceiptService.FORMATS:
        raise Http404("Unknown receipt format")

    try:
        invoice = get_invoice_service().get_invoice_by_id(invoice_id)
    except NotFoundError:
        raise Http404("Receipt not found")

    pdf_bytes = ReceiptService.generate_receipt(
        invoice=invoice, format_type=format_type, output_format="pdf"
    )

    response = HttpResponse(pdf_bytes, content_type="application/pdf")
    filename = f"receipt_{invoice.invoice_number}_{format_type}.pdf"
    response["Content-Disposition"] = f'attachment; filename="{filename}"'

    return response
