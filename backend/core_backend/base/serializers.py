from rest_framework import serializers


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer for model output.

    Subclasses may declare `select_related_fields` / `prefetch_related_fields`
    on Meta; OptimizedQuerysetMixin applies them to the view's queryset.
    """

    class Meta:
        select_related_fields = []
        prefetch_related_fields = []
