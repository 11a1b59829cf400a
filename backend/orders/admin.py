from django.contrib import admin

from payments.money import format_money
from .models import SessionOrder, SessionOrderItem


class SessionOrderItemInline(admin.TabularInline):
    model = SessionOrderItem
    extra = 0
    readonly_fields = ("get_line_total_formatted", "served_at", "created_at")
    fields = (
        "item_name",
        "quantity",
        "unit_price",
        "get_line_total_formatted",
        "destination",
        "status",
        "served_at",
    )

    @admin.display(description="Line Total")
    def get_line_total_formatted(self, obj):
        if obj.pk is None:
            return "-"
        return format_money(None, obj.line_total)


@admin.register(SessionOrder)
class SessionOrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for session orders. Edits made here bypass the
    ledger rules, so items are meant for inspection and corrections only.
    """

    list_display = (
        "order_number",
        "session",
        "status",
        "item_count",
        "ordered_by_name",
        "created_at",
    )
    list_display_links = ("order_number",)
    list_filter = ("status", "created_at")
    search_fields = ("session__guest_name", "session__table__table_number", "items__item_name")
    inlines = [SessionOrderItemInline]

    fieldsets = (
        (
            "Order Overview",
            {"fields": ("id", "session", "order_number", "status", "ordered_by", "notes")},
        ),
        (
            "Timestamps",
            {
                "classes": ("collapse",),
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        readonly = ["id", "order_number", "created_at", "updated_at"]
        if obj:
            readonly.extend(["session", "ordered_by"])
        return tuple(readonly)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("session", "session__table", "ordered_by")

    @admin.display(description="Items")
    def item_count(self, obj):
        return obj.items.count()

    @admin.display(ordering="ordered_by__username", description="Ordered By")
    def ordered_by_name(self, obj):
        if obj.ordered_by:
            full_name = f"{obj.ordered_by.first_name} {obj.ordered_by.last_name}".strip()
            return full_name or obj.ordered_by.username
        return None
