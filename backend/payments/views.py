import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from .models import SessionInvoice
from .serializers import (
    ApplyDiscountSerializer,
    RecordPaymentSerializer,
    SendInvoiceEmailSerializer,
    SessionInvoiceSerializer,
    SessionPaymentSerializer,
    VoidInvoiceSerializer,
)
from .services import InvoiceEmailService, InvoiceService, PaymentService

logger = logging.getLogger(__name__)


class SessionInvoiceViewSet(BaseViewSet):
    """
    Invoices of table sessions: payments, discounts and voids.
    """

    queryset = SessionInvoice.objects.select_related("session")
    serializer_class = SessionInvoiceSerializer
    filterset_fields = ["session", "status"]
    ordering_fields = ["generated_at", "total_amount"]
    ordering = ["generated_at", "split_number"]

    def _invoice_response(self, invoice: SessionInvoice, **extra) -> Response:
        invoice = SessionInvoice.objects.prefetch_related("payments").get(pk=invoice.pk)
        data = self.get_serializer(invoice).data
        data.update(extra)
        return Response(data)

    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request: Request, pk=None) -> Response:
        """
        GET lists the invoice's payments in order; POST records one.

        For cash, an optional cash_received returns the change due.
        """
        invoice = self.get_object()
        if request.method == "GET":
            payments = PaymentService.payments_for_invoice(invoice)
            return Response(SessionPaymentSerializer(payments, many=True).data)

        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        change_due = None
        if data.get("cash_received") is not None:
            change_due = PaymentService.cash_change_due(data["amount"], data["cash_received"])

        payment = PaymentService.process_payment(
            invoice,
            method=data["method"],
            amount=data["amount"],
            reference=data.get("reference_number") or None,
            tip_amount=data.get("tip_amount"),
            notes=data.get("notes", ""),
            processed_by=request.user,
        )
        response = {
            "payment": SessionPaymentSerializer(payment).data,
            "invoice": self.get_serializer(SessionInvoice.objects.get(pk=invoice.pk)).data,
        }
        if change_due is not None:
            response["change_due"] = str(change_due)
        return Response(response, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="discount")
    def discount(self, request: Request, pk=None) -> Response:
        serializer = ApplyDiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice = InvoiceService.apply_discount(
            self.get_object(),
            serializer.validated_data["discount"],
            reason=serializer.validated_data.get("reason") or None,
        )
        return self._invoice_response(invoice)

    @action(detail=True, methods=["post"], url_path="send-email")
    def send_email(self, request: Request, pk=None) -> Response:
        """
        Emails the bill (unpaid) or receipt (paid) to to_email, or to the guest
        email on a split invoice.
        """
        serializer = SendInvoiceEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice = self.get_object()
        kind = serializer.validated_data.get("type") or InvoiceEmailService.default_kind(invoice)
        recipient = InvoiceEmailService().send_invoice_email(
            invoice,
            recipient_email=serializer.validated_data.get("to_email") or None,
            kind=kind,
        )
        return Response({"success": True, "type": kind, "recipient": recipient})

    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request: Request, pk=None) -> Response:
        serializer = VoidInvoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice = InvoiceService.void_invoice(self.get_object(), serializer.validated_data["reason"])
        return self._invoice_response(invoice)
