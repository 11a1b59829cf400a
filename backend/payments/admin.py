from django.contrib import admin
from .models import BookingDeposit, SessionInvoice, SessionPayment


class SessionPaymentInline(admin.TabularInline):
    """
    Read-only payment history within the invoice admin page.
    Payments are append-only, so nothing here can be edited or removed.
    """

    model = SessionPayment
    extra = 0
    readonly_fields = (
        "id",
        "method",
        "amount",
        "tip_amount",
        "reference_number",
        "processed_by",
        "created_at",
    )
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SessionInvoice)
class SessionInvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "session",
        "guest_name",
        "total_amount",
        "amount_paid",
        "status",
        "generated_at",
    )
    list_filter = ("status", "generated_at")
    search_fields = ("invoice_number", "guest_name", "guest_email", "guest_phone")
    readonly_fields = (
        "id",
        "invoice_number",
        "session",
        "subtotal",
        "tax_amount",
        "service_charge",
        "discount_amount",
        "deposit_credit",
        "tip_amount",
        "total_amount",
        "amount_paid",
        "generated_at",
        "paid_at",
        "voided_at",
        "updated_at",
    )
    inlines = [SessionPaymentInline]
    fieldsets = (
        (None, {"fields": ("id", "invoice_number", "session", "status")}),
        (
            "Financials",
            {
                "fields": (
                    "subtotal",
                    "tax_amount",
                    "service_charge",
                    "discount_amount",
                    "discount_reason",
                    "deposit_credit",
                    "tip_amount",
                    "total_amount",
                    "amount_paid",
                )
            },
        ),
        ("Guest", {"fields": ("guest_name", "guest_phone", "guest_email", "guest_user")}),
        ("Timestamps", {"fields": ("generated_at", "paid_at", "voided_at", "void_reason", "updated_at")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("session", "guest_user")


@admin.register(SessionPayment)
class SessionPaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "invoice", "method", "amount", "tip_amount", "created_at")
    list_filter = ("method", "created_at")
    search_fields = ("id", "invoice__invoice_number", "reference_number")
    readonly_fields = ("id", "created_at")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BookingDeposit)
class BookingDepositAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "package_purchase_ref", "amount", "status", "paid_at")
    list_filter = ("status",)
    search_fields = ("package_purchase_ref", "booking__guest_name")
    readonly_fields = ("id", "created_at")
