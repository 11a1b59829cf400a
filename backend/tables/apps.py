from django.apps import AppConfig


class TablesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tables"
    verbose_name = "Tables & Sessions"

    def ready(self):
        import tables.signals  # noqa: F401
