from django.contrib import admin

from .models import VenueSettings


@admin.register(VenueSettings)
class VenueSettingsAdmin(admin.ModelAdmin):
    list_display = ("venue_name", "venue_id", "tax_rate", "service_charge_rate", "updated_at")
    search_fields = ("venue_name", "venue_id")
