import uuid
from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Promo",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("venue_id", models.UUIDField(db_index=True)),
                ("promo_code", models.CharField(max_length=50)),
                ("title", models.CharField(max_length=200)),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("percentage", "Percentage of subtotal"), ("fixed", "Fixed amount")],
                        max_length=20,
                    ),
                ),
                (
                    "discount_value",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Percentage (e.g. 15 for 15%) or a fixed amount, depending on discount_type.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "max_redemptions",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited redemptions.", null=True),
                ),
                ("current_redemptions", models.PositiveIntegerField(default=0)),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Promo",
                "verbose_name_plural": "Promos",
                "indexes": [
                    models.Index(fields=["venue_id", "promo_code", "is_active"], name="promo_lookup_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("venue_id", "promo_code"), name="unique_promo_code_per_venue"),
                ],
            },
        ),
    ]
