"""
Core backend base components.

Shared view and serializer building blocks for the API apps.
"""

from .viewsets import BaseViewSet
from .serializers import BaseModelSerializer
from .mixins import OptimizedQuerysetMixin

__all__ = [
    'BaseViewSet',
    'BaseModelSerializer',
    'OptimizedQuerysetMixin',
]
