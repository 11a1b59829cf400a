import logging

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from orders.models import SessionOrder, SessionOrderItem
from orders.serializers import (
    AddItemsSerializer,
    DestinationQueueQuerySerializer,
    DestinationTicketSerializer,
    EditOrderSerializer,
    ItemQuantitySerializer,
    SessionOrderItemSerializer,
    SessionOrderSerializer,
    StatusSerializer,
)
from orders.services import OrderLedgerService

logger = logging.getLogger(__name__)


class SessionOrderViewSet(BaseViewSet):
    """
    Orders of table sessions. Orders are created through
    /api/table-sessions/<id>/orders/; this viewset edits them.
    """

    queryset = SessionOrder.objects.all()
    serializer_class = SessionOrderSerializer
    filterset_fields = ["session", "status"]
    ordering = ["order_number"]

    def _order_response(self, order: SessionOrder, **extra) -> Response:
        order = SessionOrder.objects.prefetch_related("items").get(pk=order.pk)
        data = SessionOrderSerializer(order, context=self.get_serializer_context()).data
        data.update(extra)
        return Response(data)

    @action(detail=True, methods=["post"], url_path="edit")
    def edit(self, request: Request, pk=None) -> Response:
        """
        Diff-and-apply edit: the body is the full desired cart. Lines with an
        existing_item_id update that item; others are added; missing items
        are cancelled.
        """
        order = self.get_object()
        serializer = EditOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        plan = OrderLedgerService.reconcile_edit(order, serializer.validated_data["items"])
        return self._order_response(
            order,
            changes={"removed": len(plan.deletes), "updated": len(plan.updates), "added": len(plan.creates)},
        )

    @action(detail=True, methods=["post"], url_path="items")
    def add_items(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = AddItemsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        OrderLedgerService.add_items(order, serializer.validated_data["items"])
        return self._order_response(order)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        OrderLedgerService.update_order_status(order, serializer.validated_data["status"])
        return self._order_response(order)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        """Cancels the order and all of its items."""
        order = OrderLedgerService.cancel_order(self.get_object())
        return self._order_response(order)


class SessionOrderItemViewSet(BaseViewSet):
    queryset = SessionOrderItem.objects.select_related("order")
    serializer_class = SessionOrderItemSerializer
    filterset_fields = ["order", "status", "destination"]
    ordering = ["created_at"]

    def _item_response(self, item: SessionOrderItem) -> Response:
        return Response(self.get_serializer(item).data)

    @action(detail=False, methods=["get"], url_path="queue")
    def queue(self, request: Request) -> Response:
        """
        Kitchen/bar display: ?venue_id=<uuid>&destination=kitchen|bar.
        Open items grouped by order, oldest first.
        """
        query = DestinationQueueQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        tickets = OrderLedgerService.destination_queue(
            query.validated_data["venue_id"], query.validated_data["destination"]
        )
        return Response(DestinationTicketSerializer(tickets, many=True).data)

    @action(detail=True, methods=["post"], url_path="quantity")
    def quantity(self, request: Request, pk=None) -> Response:
        serializer = ItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = OrderLedgerService.update_item_quantity(self.get_object(), serializer.validated_data["quantity"])
        return self._item_response(item)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        """Kitchen/bar progress; marking served locks the item."""
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = OrderLedgerService.update_item_status(self.get_object(), serializer.validated_data["status"])
        return self._item_response(item)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        item = OrderLedgerService.delete_item(self.get_object())
        return self._item_response(item)
