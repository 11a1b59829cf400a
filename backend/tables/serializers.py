from django.db.models import Prefetch
from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from customers.models import Booking
from orders.models import SessionOrder, SessionOrderItem
from orders.serializers import SessionOrderSerializer
from payments.models import SessionInvoice
from payments.serializers import SessionInvoiceSerializer
from .models import Table, TableSession


class TableSerializer(BaseModelSerializer):
    class Meta:
        model = Table
        fields = ["id", "venue_id", "table_number", "seats", "location_zone", "status", "is_active"]
        read_only_fields = fields


class TableSessionListSerializer(BaseModelSerializer):
    table_number = serializers.CharField(source="table.table_number", read_only=True, default=None)

    class Meta:
        model = TableSession
        fields = [
            "id",
            "venue_id",
            "table",
            "table_number",
            "booking",
            "guest_count",
            "guest_name",
            "status",
            "opened_at",
            "closed_at",
        ]
        read_only_fields = fields
        select_related_fields = ["table"]


class TableSessionSerializer(TableSessionListSerializer):
    """A session with its orders, items, invoices and payments."""

    orders = SessionOrderSerializer(many=True, read_only=True)
    invoices = SessionInvoiceSerializer(many=True, read_only=True)

    class Meta(TableSessionListSerializer.Meta):
        fields = TableSessionListSerializer.Meta.fields + [
            "package_purchase_ref",
            "notes",
            "opened_by",
            "closed_by",
            "orders",
            "invoices",
        ]
        read_only_fields = fields
        select_related_fields = ["table", "booking"]
        prefetch_related_fields = [
            Prefetch(
                "orders",
                queryset=SessionOrder.objects.order_by("order_number").prefetch_related(
                    Prefetch("items", queryset=SessionOrderItem.objects.order_by("created_at"))
                ),
            ),
            Prefetch(
                "invoices",
                queryset=SessionInvoice.objects.order_by("generated_at", "split_number").prefetch_related("payments"),
            ),
        ]


class OpenSessionSerializer(serializers.Serializer):
    venue_id = serializers.UUIDField()
    guest_count = serializers.IntegerField(required=False, default=1)
    guest_name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    table = serializers.PrimaryKeyRelatedField(queryset=Table.objects.filter(is_active=True), required=False, allow_null=True)
    booking = serializers.PrimaryKeyRelatedField(queryset=Booking.objects.all(), required=False, allow_null=True)
    package_purchase_ref = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, data):
        table = data.get("table")
        if table is not None and table.venue_id != data["venue_id"]:
            raise serializers.ValidationError({"table": "Table belongs to another venue."})
        return data
