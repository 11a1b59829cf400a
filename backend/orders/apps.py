from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Session Orders"

    def ready(self):
        # Connect signal handlers decorated with @receiver.
        import orders.signals  # noqa: F401
