import uuid

import django.db.models.deletion
from django.db import migrations, models


MOVEMENT_TYPE_CHOICES = [
    ("purchase_in", "Purchase Receipt"),
    ("production_in", "Production Output"),
    ("production_out", "Production Consumption"),
    ("sale_out", "Sales"),
    ("adjustment_in", "Stock Adjustment (+)"),
    ("adjustment_out", "Stock Adjustment (-)"),
    ("transfer_in", "Transfer In"),
    ("transfer_out", "Transfer Out"),
    ("loss", "Stock Loss"),
    ("drying", "Drying Loss"),
    ("return_in", "Customer Return"),
    ("return_out", "Supplier Return"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryBatch",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("batch_number", models.CharField(max_length=100, unique=True)),
                ("production_date", models.DateField(blank=True, null=True)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("initial_quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("current_quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("unit_cost", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                (
                    "source_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("purchase", "purchase"),
                            ("production", "production"),
                            ("transfer", "transfer"),
                            ("adjustment", "adjustment"),
                        ],
                        max_length=32,
                        null=True,
                    ),
                ),
                ("source_id", models.CharField(blank=True, max_length=128, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "active"),
                            ("depleted", "depleted"),
                            ("expired", "expired"),
                            ("quarantine", "quarantine"),
                        ],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="batches",
                        to="catalog.product",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="batches",
                        to="core.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_batch",
                "ordering": ["batch_number"],
                "indexes": [
                    models.Index(fields=["product", "warehouse", "status"], name="idx_inv_batch_prod_wh_status"),
                    models.Index(fields=["expiry_date"], name="idx_inv_batch_expiry"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockLevel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.DecimalField(decimal_places=3, default=0, max_digits=15)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_levels",
                        to="catalog.product",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_levels",
                        to="core.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_stock_level",
                "ordering": ["warehouse", "product"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "warehouse"),
                        name="uq_inventory_stock_level_product_warehouse",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference_number", models.CharField(max_length=64, unique=True)),
                ("movement_type", models.CharField(choices=MOVEMENT_TYPE_CHOICES, max_length=32)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=15)),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ("total_value", models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ("quantity_before", models.DecimalField(decimal_places=3, max_digits=15)),
                ("quantity_after", models.DecimalField(decimal_places=3, max_digits=15)),
                ("reference_type", models.CharField(blank=True, max_length=64, null=True)),
                ("reference_id", models.CharField(blank=True, max_length=128, null=True)),
                ("reason", models.TextField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.inventorybatch",
                    ),
                ),
                (
                    "from_warehouse",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transfers_out",
                        to="core.warehouse",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="catalog.product",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transfers_in",
                        to="core.warehouse",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="core.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_stock_movement",
                "ordering": ["-created_at", "reference_number"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="idx_inv_mov_product_created"),
                    models.Index(fields=["warehouse", "created_at"], name="idx_inv_mov_wh_created"),
                    models.Index(fields=["movement_type"], name="idx_inv_mov_type"),
                    models.Index(fields=["reference_type", "reference_id"], name="idx_inv_mov_reference"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockReceipt",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("supplier_name", models.CharField(blank=True, max_length=255, null=True)),
                ("reference_number", models.CharField(max_length=128)),
                ("received_at", models.DateTimeField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_receipts",
                        to="core.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_stock_receipt",
                "ordering": ["-received_at", "reference_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("warehouse", "reference_number"),
                        name="uq_inventory_receipt_warehouse_reference",
                    )
                ],
            },
        ),
    ]
