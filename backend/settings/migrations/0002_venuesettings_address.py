from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("settings", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="venuesettings",
            name="address",
            field=models.CharField(
                blank=True,
                default="",
                help_text="Printed on emailed bills and receipts.",
                max_length=255,
            ),
        ),
    ]
