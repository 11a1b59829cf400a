from rest_framework.routers import DefaultRouter

from .views import SessionInvoiceViewSet

router = DefaultRouter()
router.register(r"invoices", SessionInvoiceViewSet, basename="invoice")

urlpatterns = router.urls
