from rest_framework.routers import DefaultRouter

from .views import TableSessionViewSet

router = DefaultRouter()
router.register(r"table-sessions", TableSessionViewSet, basename="table-session")

urlpatterns = router.urls
