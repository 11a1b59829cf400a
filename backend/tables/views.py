import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from orders.serializers import CreateOrderSerializer, SessionOrderSerializer
from orders.services import OrderLedgerService
from payments.serializers import (
    BillTotalsSerializer,
    GenerateInvoiceSerializer,
    GenerateSplitInvoicesSerializer,
    PreviewSerializer,
    SessionInvoiceSerializer,
)
from payments.services import InvoiceService
from .models import TableSession
from .serializers import OpenSessionSerializer, TableSessionListSerializer, TableSessionSerializer
from .services import SessionService

logger = logging.getLogger(__name__)


def _advisories(result):
    return [
        {"name": outcome.name, "ok": outcome.ok, "error": outcome.error}
        for outcome in result.advisories
    ]


class TableSessionViewSet(BaseViewSet):
    """
    Table sessions: open, inspect, bill and close.

    Every mutation goes through SessionService / InvoiceService /
    OrderLedgerService; billing errors are rendered by the project's
    exception handler.
    """

    queryset = TableSession.objects.all()
    filterset_fields = ["venue_id", "status", "table"]
    ordering_fields = ["opened_at", "closed_at"]
    ordering = ["-opened_at"]

    def get_serializer_class(self):
        if self.action == "list":
            return TableSessionListSerializer
        return TableSessionSerializer

    def _session_response(self, session: TableSession, http_status=status.HTTP_200_OK, **extra) -> Response:
        session = SessionService.load_session(session.pk)
        data = TableSessionSerializer(session, context=self.get_serializer_context()).data
        data.update(extra)
        return Response(data, status=http_status)

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Opens a session for a walk-in, a table or a booking."""
        serializer = OpenSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SessionService.open_session(opened_by=request.user, **serializer.validated_data)
        return self._session_response(
            result.value, http_status=status.HTTP_201_CREATED, advisories=_advisories(result)
        )

    @action(detail=True, methods=["get", "post"], url_path="orders")
    def orders(self, request: Request, pk=None) -> Response:
        session = self.get_object()
        if request.method == "GET":
            orders = session.orders.order_by("order_number").prefetch_related("items")
            return Response(SessionOrderSerializer(orders, many=True).data)

        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLedgerService.create_order(
            session,
            serializer.validated_data["items"],
            notes=serializer.validated_data.get("notes", ""),
            ordered_by=request.user,
        )
        order = session.orders.prefetch_related("items").get(pk=order.pk)
        return Response(SessionOrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="preview")
    def preview(self, request: Request, pk=None) -> Response:
        """Live totals for the current billable items. Writes nothing."""
        session = self.get_object()
        serializer = PreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        totals = InvoiceService.preview(
            session,
            discount=data.get("discount"),
            promo_code=data.get("promo_code") or None,
            tip=data.get("tip"),
            deposit_credit=data.get("deposit_credit"),
            tax_rate=data.get("tax_rate"),
            service_charge_rate=data.get("service_charge_rate"),
        )
        return Response(BillTotalsSerializer(totals.as_dict()).data)

    @action(detail=True, methods=["post"], url_path="generate-invoice")
    def generate_invoice(self, request: Request, pk=None) -> Response:
        session = self.get_object()
        serializer = GenerateInvoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        invoice = InvoiceService.generate_invoice(
            session,
            tax_rate=data.get("tax_rate"),
            service_charge_rate=data.get("service_charge_rate"),
            discount_amount=data.get("discount"),
            discount_reason=data.get("discount_reason") or None,
            deposit_credit=data.get("deposit_credit"),
            promo_code=data.get("promo_code") or None,
            generated_by=request.user,
        )
        return Response(SessionInvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="generate-split-invoices")
    def generate_split_invoices(self, request: Request, pk=None) -> Response:
        session = self.get_object()
        serializer = GenerateSplitInvoicesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        invoices = InvoiceService.generate_split_invoices(
            session,
            split_count=data["split_count"],
            guest_infos=data["guests"],
            tax_rate=data.get("tax_rate"),
            service_charge_rate=data.get("service_charge_rate"),
            total_discount=data.get("discount"),
            tip_amount=data.get("tip"),
            discount_reason=data.get("discount_reason") or None,
            deposit_credit=data.get("deposit_credit"),
            promo_code=data.get("promo_code") or None,
            generated_by=request.user,
        )
        return Response(SessionInvoiceSerializer(invoices, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="close")
    def close(self, request: Request, pk=None) -> Response:
        result = SessionService.close_session(self.get_object(), closed_by=request.user)
        return self._session_response(result.value, advisories=_advisories(result))
