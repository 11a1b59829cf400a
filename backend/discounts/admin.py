from django.contrib import admin

from .models import Promo


@admin.register(Promo)
class PromoAdmin(admin.ModelAdmin):
    list_display = (
        "promo_code",
        "title",
        "discount_type",
        "discount_value",
        "current_redemptions",
        "max_redemptions",
        "starts_at",
        "ends_at",
        "is_active",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("promo_code", "title")
