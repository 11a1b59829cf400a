from rest_framework import serializers


class GuestSearchSerializer(serializers.Serializer):
    venue_id = serializers.UUIDField()
    q = serializers.CharField(max_length=100, allow_blank=True)


class ManualGuestSerializer(serializers.Serializer):
    venue_id = serializers.UUIDField()
    name = serializers.CharField(max_length=200, allow_blank=True)
    phone = serializers.CharField(max_length=32, allow_blank=True)
    email = serializers.CharField(max_length=254, allow_blank=True)
