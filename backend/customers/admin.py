from django.contrib import admin

from .models import Booking, GuestProfile


@admin.register(GuestProfile)
class GuestProfileAdmin(admin.ModelAdmin):
    list_display = ("guest_name", "guest_phone", "guest_email", "venue_id", "created_at")
    search_fields = ("guest_name", "guest_phone", "guest_email")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("guest_name", "party_size", "status", "checked_in_at", "venue_id")
    list_filter = ("status",)
    search_fields = ("guest_name",)
