from rest_framework import filters, viewsets
from django_filters.rest_framework import DjangoFilterBackend
from .mixins import OptimizedQuerysetMixin
from ..pagination import StandardPagination


class BaseViewSet(OptimizedQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    Base ViewSet for billing resources.

    Records change only through services, so the generic routes are list and
    retrieve; child classes add `create` or @action endpoints that call a
    service.

    Features:
    - Automatic query optimization via OptimizedQuerysetMixin
    - Standard pagination, filtering and ordering
    """

    pagination_class = StandardPagination

    filter_backends = [
        DjangoFilterBackend,
        filters.OrderingFilter,
    ]
