from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from customers.services import SplitGuest
from discounts.strategies import Adjustment
from .models import SessionInvoice, SessionPayment


class SessionPaymentSerializer(BaseModelSerializer):
    class Meta:
        model = SessionPayment
        fields = [
            "id",
            "invoice",
            "method",
            "amount",
            "tip_amount",
            "reference_number",
            "notes",
            "processed_by",
            "created_at",
        ]
        read_only_fields = fields


class SessionInvoiceSerializer(BaseModelSerializer):
    payments = SessionPaymentSerializer(many=True, read_only=True)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = SessionInvoice
        fields = [
            "id",
            "session",
            "invoice_number",
            "split_number",
            "split_count",
            "subtotal",
            "tax_amount",
            "service_charge",
            "discount_amount",
            "discount_reason",
            "deposit_credit",
            "tip_amount",
            "total_amount",
            "amount_paid",
            "balance_due",
            "status",
            "guest_name",
            "guest_phone",
            "guest_email",
            "guest_user",
            "generated_at",
            "paid_at",
            "voided_at",
            "void_reason",
            "payments",
        ]
        read_only_fields = fields
        prefetch_related_fields = ["payments"]


# --- Service input serializers ---

class AdjustmentField(serializers.Field):
    """
    Discount or tip input: a plain amount (fixed) or
    {"kind": "percent"|"fixed", "value": ...}.
    """

    def to_internal_value(self, data):
        if data in (None, ""):
            return Adjustment.none()
        if not isinstance(data, (dict, str, int, float)):
            raise serializers.ValidationError("Expected an amount or an object with kind and value.")
        return Adjustment.coerce(data)

    def to_representation(self, value):
        return {"kind": value.kind, "value": str(value.value)}


class RatesSerializer(serializers.Serializer):
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100)
    service_charge_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100
    )
    deposit_credit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=0)
    promo_code = serializers.CharField(required=False, allow_blank=True, max_length=50)


class PreviewSerializer(RatesSerializer):
    discount = AdjustmentField(required=False)
    tip = AdjustmentField(required=False)


class GenerateInvoiceSerializer(RatesSerializer):
    discount = AdjustmentField(required=False)
    discount_reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class SplitGuestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    user_id = serializers.IntegerField(required=False, allow_null=True)
    guest_profile_id = serializers.CharField(required=False, allow_null=True)

    def to_internal_value(self, data):
        return SplitGuest.from_dict(super().to_internal_value(data))


class GenerateSplitInvoicesSerializer(GenerateInvoiceSerializer):
    split_count = serializers.IntegerField()
    tip = AdjustmentField(required=False)
    guests = SplitGuestSerializer(many=True)


class RecordPaymentSerializer(serializers.Serializer):
    method = serializers.CharField(max_length=20)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    tip_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True)
    cash_received = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)


class VoidInvoiceSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, allow_blank=True)


class SendInvoiceEmailSerializer(serializers.Serializer):
    # Address format is checked by the email service so API and service
    # callers get the same InvalidEmail error.
    to_email = serializers.CharField(required=False, allow_blank=True, max_length=254)
    type = serializers.ChoiceField(choices=["bill", "receipt"], required=False)


class ApplyDiscountSerializer(serializers.Serializer):
    discount = AdjustmentField()
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class BillTotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    tax_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    service_charge = serializers.DecimalField(max_digits=14, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    promo_discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_discount = serializers.DecimalField(max_digits=14, decimal_places=2)
    deposit_credit = serializers.DecimalField(max_digits=14, decimal_places=2)
    tip_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    invoice_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    grand_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    clamped = serializers.BooleanField()
