from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from orders.models import OrderStatus, SessionOrder, SessionOrderItem
from orders.services import CartLine


class SessionOrderItemSerializer(BaseModelSerializer):
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = SessionOrderItem
        fields = [
            "id",
            "order",
            "menu_item_ref",
            "item_name",
            "quantity",
            "unit_price",
            "line_total",
            "destination",
            "status",
            "notes",
            "served_at",
            "created_at",
        ]
        read_only_fields = fields


class SessionOrderSerializer(BaseModelSerializer):
    items = SessionOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = SessionOrder
        fields = [
            "id",
            "session",
            "order_number",
            "status",
            "notes",
            "ordered_by",
            "created_at",
            "items",
        ]
        read_only_fields = fields
        prefetch_related_fields = ["items"]


# --- Service-driven Serializers ---

class CartLineSerializer(serializers.Serializer):
    item_name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2)
    destination = serializers.ChoiceField(
        choices=SessionOrderItem.Destination.choices, required=False, default=SessionOrderItem.Destination.KITCHEN
    )
    menu_item_ref = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    existing_item_id = serializers.UUIDField(required=False, allow_null=True)

    def to_internal_value(self, data):
        # Quantity rules (>= 1) are enforced by the ledger so API and service
        # callers get the same InvalidQuantity error.
        return CartLine.from_dict(super().to_internal_value(data))


class CreateOrderSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class EditOrderSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True)


class AddItemsSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True)


class ItemQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class DestinationQueueQuerySerializer(serializers.Serializer):
    venue_id = serializers.UUIDField()
    destination = serializers.ChoiceField(choices=SessionOrderItem.Destination.choices)


class DestinationTicketSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_number = serializers.IntegerField()
    session_id = serializers.UUIDField()
    table_number = serializers.CharField(allow_null=True)
    is_walk_in = serializers.BooleanField()
    guest_name = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    pending_count = serializers.IntegerField()
    items = SessionOrderItemSerializer(many=True)
