from rest_framework.routers import DefaultRouter

from .views import SessionOrderItemViewSet, SessionOrderViewSet

router = DefaultRouter()
router.register(r"session-orders", SessionOrderViewSet, basename="session-order")
router.register(r"session-order-items", SessionOrderItemViewSet, basename="session-order-item")

urlpatterns = router.urls
