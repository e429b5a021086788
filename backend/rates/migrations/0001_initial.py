import django.core.validators
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RateConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("config_key", models.CharField(max_length=100, unique=True)),
                ("config_value", models.JSONField()),
                ("description", models.TextField(blank=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=models.SET_NULL, related_name="rate_config_updates", to=settings.AUTH_USER_MODEL)),
            ],
            options={"ordering": ["config_key"]},
        ),
        migrations.CreateModel(
            name="RateChangeLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("config_key", models.CharField(max_length=100)),
                ("old_value", models.JSONField(blank=True, null=True)),
                ("new_value", models.JSONField()),
                ("change_reason", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("changed_by", models.ForeignKey(blank=True, null=True, on_delete=models.SET_NULL, related_name="rate_changes", to=settings.AUTH_USER_MODEL)),
                ("rate_config", models.ForeignKey(on_delete=models.PROTECT, related_name="change_log", to="rates.rateconfig")),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="PricingModifier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True)),
                ("modifier_type", models.CharField(choices=[("DISCOUNT", "Discount"), ("SURCHARGE", "Surcharge")], max_length=12)),
                ("value_type", models.CharField(choices=[("PERCENTAGE", "Percentage"), ("FLAT", "Flat amount")], default="PERCENTAGE", max_length=12)),
                ("value", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("priority", models.IntegerField(default=0)),
                ("is_exclusive", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("service_keys", models.JSONField(blank=True, default=list)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("min_advance_days", models.PositiveIntegerField(blank=True, null=True)),
                ("max_advance_days", models.PositiveIntegerField(blank=True, null=True)),
                ("min_party_size", models.PositiveIntegerField(blank=True, null=True)),
                ("max_party_size", models.PositiveIntegerField(blank=True, null=True)),
                ("weekdays", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["-priority", "name", "id"]},
        ),
    ]
