"""
Guest lookup for split-invoice assignment.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import GuestSearchSerializer, ManualGuestSerializer
from .services import GuestProfileService


class GuestSearchView(APIView):
    """
    GET /api/guests/search/?venue_id=<uuid>&q=<fragment>

    Venue guests first, then matching accounts.
    """

    def get(self, request):
        serializer = GuestSearchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        guests = GuestProfileService.search(serializer.validated_data["venue_id"], serializer.validated_data["q"])
        return Response([guest.to_dict() for guest in guests])


class ManualGuestView(APIView):
    """
    POST /api/guests/

    Registers a guest typed in by staff. A duplicate phone or email answers
    409 DuplicateGuest so the client can switch to search.
    """

    def post(self, request):
        serializer = ManualGuestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        guest = GuestProfileService.create_manual_guest(data["venue_id"], data["name"], data["phone"], data["email"])
        return Response(guest.to_dict(), status=status.HTTP_201_CREATED)
