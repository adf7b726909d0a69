import uuid
from datetime import date
from decimal import Decimal

from django.db import models
from django.utils import timezone

from apps.catalog.models import Product
from apps.core.models import Warehouse


class BatchStatus(models.TextChoices):
    ACTIVE = "active", "active"
    DEPLETED = "depleted", "depleted"
    EXPIRED = "expired", "expired"
    QUARANTINE = "quarantine", "quarantine"


class BatchSource(models.TextChoices):
    PURCHASE = "purchase", "purchase"
    PRODUCTION = "production", "production"
    TRANSFER = "transfer", "transfer"
    ADJUSTMENT = "adjustment", "adjustment"


class MovementType(models.TextChoices):
    PURCHASE_IN = "purchase_in", "Purchase Receipt"
    PRODUCTION_IN = "production_in", "Production Output"
    PRODUCTION_OUT = "production_out", "Production Consumption"
    SALE_OUT = "sale_out", "Sales"
    ADJUSTMENT_IN = "adjustment_in", "Stock Adjustment (+)"
    ADJUSTMENT_OUT = "adjustment_out", "Stock Adjustment (-)"
    TRANSFER_IN = "transfer_in", "Transfer In"
    TRANSFER_OUT = "transfer_out", "Transfer Out"
    LOSS = "loss", "Stock Loss"
    DRYING = "drying", "Drying Loss"
    RETURN_IN = "return_in", "Customer Return"
    RETURN_OUT = "return_out", "Supplier Return"


INBOUND_TYPES = frozenset(
    {
        MovementType.PURCHASE_IN,
        MovementType.PRODUCTION_IN,
        MovementType.ADJUSTMENT_IN,
        MovementType.TRANSFER_IN,
        MovementType.RETURN_IN,
    }
)

OUTBOUND_TYPES = frozenset(
    {
        MovementType.PRODUCTION_OUT,
        MovementType.SALE_OUT,
        MovementType.ADJUSTMENT_OUT,
        MovementType.TRANSFER_OUT,
        MovementType.LOSS,
        MovementType.DRYING,
        MovementType.RETURN_OUT,
    }
)


class InventoryBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_number = models.CharField(max_length=100, unique=True)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="batches")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="batches")
    production_date = models.DateField(blank=True, null=True)
    expiry_date = models.DateField(blank=True, null=True)
    initial_quantity = models.DecimalField(max_digits=15, decimal_places=3)
    current_quantity = models.DecimalField(max_digits=15, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    source_type = models.CharField(max_length=32, choices=BatchSource.choices, blank=True, null=True)
    source_id = models.CharField(max_length=128, blank=True, null=True)
    status = models.CharField(max_length=16, choices=BatchStatus.choices, default=BatchStatus.ACTIVE)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_batch"
        ordering = ["batch_number"]
        indexes = [
            models.Index(fields=["product", "warehouse", "status"], name="idx_inv_batch_prod_wh_status"),
            models.Index(fields=["expiry_date"], name="idx_inv_batch_expiry"),
        ]

    def __str__(self) -> str:
        return self.batch_number

    def is_expired(self, on_date: date | None = None) -> bool:
        on_date = on_date or timezone.localdate()
        return bool(self.expiry_date and self.expiry_date < on_date)

    def has_stock(self) -> bool:
        return self.current_quantity > 0

    @property
    def total_value(self) -> Decimal:
        return (self.current_quantity * self.unit_cost).quantize(Decimal("0.01"))


class StockLevelQuerySet(models.QuerySet):
    def low(self):
        """At or below the product reorder level but still above its critical level."""
        return self.filter(
            product__reorder_level__gt=0,
            quantity__lte=models.F("product__reorder_level"),
            quantity__gt=models.F("product__critical_level"),
        )

    def critical(self):
        return self.filter(product__critical_level__gt=0, quantity__lte=models.F("product__critical_level"))


class StockLevel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="stock_levels")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="stock_levels")
    quantity = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockLevelQuerySet.as_manager()

    class Meta:
        db_table = "inventory_stock_level"
        ordering = ["warehouse", "product"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "warehouse"],
                name="uq_inventory_stock_level_product_warehouse",
            )
        ]

    def __str__(self) -> str:
        return f"{self.product} @ {self.warehouse}: {self.quantity}"


class StockMovementQuerySet(models.QuerySet):
    def inbound(self):
        return self.filter(movement_type__in=INBOUND_TYPES)

    def outbound(self):
        return self.filter(movement_type__in=OUTBOUND_TYPES)

    def for_reference(self, reference_type: str, reference_id):
        return self.filter(reference_type=reference_type, reference_id=str(reference_id))

    def update(self, **kwargs):
        raise TypeError("Stock movements are append-only and cannot be updated.")

    def delete(self):
        raise TypeError("Stock movements are append-only and cannot be deleted.")


class StockMovement(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference_number = models.CharField(max_length=64, unique=True)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="stock_movements")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="stock_movements")
    batch = models.ForeignKey(
        InventoryBatch,
        on_delete=models.PROTECT,
        related_name="movements",
        blank=True,
        null=True,
    )
    movement_type = models.CharField(max_length=32, choices=MovementType.choices)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    total_value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    quantity_before = models.DecimalField(max_digits=15, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=15, decimal_places=3)
    reference_type = models.CharField(max_length=64, blank=True, null=True)
    reference_id = models.CharField(max_length=128, blank=True, null=True)
    from_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.SET_NULL,
        related_name="transfers_out",
        blank=True,
        null=True,
    )
    to_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.SET_NULL,
        related_name="transfers_in",
        blank=True,
        null=True,
    )
    reason = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        db_table = "inventory_stock_movement"
        ordering = ["-created_at", "reference_number"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="idx_inv_mov_product_created"),
            models.Index(fields=["warehouse", "created_at"], name="idx_inv_mov_wh_created"),
            models.Index(fields=["movement_type"], name="idx_inv_mov_type"),
            models.Index(fields=["reference_type", "reference_id"], name="idx_inv_mov_reference"),
        ]

    def __str__(self) -> str:
        return f"{self.reference_number} {self.movement_type} {self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError("Stock movements are append-only and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("Stock movements are append-only and cannot be deleted.")

    @property
    def is_inbound(self) -> bool:
        return self.movement_type in INBOUND_TYPES

    @property
    def is_outbound(self) -> bool:
        return self.movement_type in OUTBOUND_TYPES


class StockReceipt(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="stock_receipts")
    supplier_name = models.CharField(max_length=255, blank=True, null=True)
    reference_number = models.CharField(max_length=128)
    received_at = models.DateTimeField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_stock_receipt"
        ordering = ["-received_at", "reference_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["warehouse", "reference_number"],
                name="uq_inventory_receipt_warehouse_reference",
            )
        ]

    def __str__(self) -> str:
        return self.reference_number
