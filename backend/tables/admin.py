from django.contrib import admin

from .models import Table, TableSession


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("table_number", "venue_id", "seats", "location_zone", "status", "is_active")
    list_filter = ("status", "is_active", "location_zone")
    search_fields = ("table_number",)


@admin.register(TableSession)
class TableSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "table", "guest_name", "guest_count", "status", "opened_at", "closed_at")
    list_filter = ("status", "opened_at")
    search_fields = ("id", "guest_name", "package_purchase_ref")
    readonly_fields = ("id", "opened_at", "closed_at", "updated_at")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("table", "booking")
