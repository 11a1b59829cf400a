from django.urls import path

from .views import GuestSearchView, ManualGuestView

urlpatterns = [
    path("guests/", ManualGuestView.as_view(), name="guest-create"),
    path("guests/search/", GuestSearchView.as_view(), name="guest-search"),
]
