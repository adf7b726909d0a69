import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("core", "0001_initial"),
        ("formulas", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ProductionRun",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("production_number", models.CharField(max_length=50, unique=True)),
                ("production_date", models.DateField(default=django.utils.timezone.localdate)),
                ("target_quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("actual_output", models.DecimalField(decimal_places=3, default=0, max_digits=15)),
                ("wastage_quantity", models.DecimalField(decimal_places=3, default=0, max_digits=15)),
                ("wastage_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("batch_number", models.CharField(blank=True, max_length=100, null=True)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("planned", "planned"),
                            ("in_progress", "in_progress"),
                            ("completed", "completed"),
                            ("cancelled", "cancelled"),
                        ],
                        default="planned",
                        max_length=16,
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("duration_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "finished_product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_runs",
                        to="catalog.product",
                    ),
                ),
                (
                    "formula",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_runs",
                        to="formulas.formula",
                    ),
                ),
                (
                    "output_batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="inventory.inventorybatch",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_runs",
                        to="core.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "production_run",
                "ordering": ["-production_date", "-production_number"],
                "indexes": [
                    models.Index(fields=["status"], name="idx_prod_run_status"),
                    models.Index(fields=["production_date"], name="idx_prod_run_date"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductionRunItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                ("planned_quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("actual_quantity", models.DecimalField(blank=True, decimal_places=3, max_digits=15, null=True)),
                ("variance", models.DecimalField(decimal_places=3, default=0, max_digits=15)),
                ("unit_of_measure", models.CharField(blank=True, max_length=16, null=True)),
                ("unit_cost", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("total_cost", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_run_items",
                        to="catalog.product",
                    ),
                ),
                (
                    "production_run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="production.productionrun",
                    ),
                ),
            ],
            options={
                "db_table": "production_run_item",
                "ordering": ["-percentage", "id"],
            },
        ),
        migrations.CreateModel(
            name="ProductionLoss",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "loss_type",
                    models.CharField(
                        choices=[
                            ("spillage", "spillage"),
                            ("damage", "damage"),
                            ("quality_reject", "quality_reject"),
                            ("drying", "drying"),
                            ("other", "other"),
                        ],
                        max_length=32,
                    ),
                ),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("estimated_value", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("reason", models.TextField()),
                ("corrective_action", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_losses",
                        to="catalog.product",
                    ),
                ),
                (
                    "production_run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="losses",
                        to="production.productionrun",
                    ),
                ),
            ],
            options={
                "db_table": "production_loss",
                "ordering": ["created_at"],
            },
        ),
    ]
