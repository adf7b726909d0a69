import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils import timezone

from apps.catalog.models import Product
from apps.core.models import Warehouse
from apps.formulas.models import Formula
from apps.inventory.models import InventoryBatch


def efficiency(actual_output, target_quantity) -> Decimal:
    """Output as a percentage of target, 0 when there is no positive target."""
    target = Decimal(str(target_quantity or 0))
    if target <= 0:
        return Decimal("0")
    return (Decimal(str(actual_output or 0)) / target * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class RunStatus(models.TextChoices):
    PLANNED = "planned", "planned"
    IN_PROGRESS = "in_progress", "in_progress"
    COMPLETED = "completed", "completed"
    CANCELLED = "cancelled", "cancelled"


class LossType(models.TextChoices):
    SPILLAGE = "spillage", "spillage"
    DAMAGE = "damage", "damage"
    QUALITY_REJECT = "quality_reject", "quality_reject"
    DRYING = "drying", "drying"
    OTHER = "other", "other"


class ProductionRunQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status__in=(RunStatus.PLANNED, RunStatus.IN_PROGRESS))

    def between(self, start_date, end_date):
        queryset = self
        if start_date:
            queryset = queryset.filter(production_date__gte=start_date)
        if end_date:
            queryset = queryset.filter(production_date__lte=end_date)
        return queryset


class ProductionRun(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    production_number = models.CharField(max_length=50, unique=True)
    formula = models.ForeignKey(Formula, on_delete=models.PROTECT, related_name="production_runs")
    finished_product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="production_runs",
        blank=True,
        null=True,
    )
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="production_runs")
    production_date = models.DateField(default=timezone.localdate)
    target_quantity = models.DecimalField(max_digits=15, decimal_places=3)
    actual_output = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    wastage_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    wastage_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    batch_number = models.CharField(max_length=100, blank=True, null=True)
    expiry_date = models.DateField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=RunStatus.choices, default=RunStatus.PLANNED)
    started_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    duration_minutes = models.PositiveIntegerField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    output_batch = models.ForeignKey(
        InventoryBatch,
        on_delete=models.SET_NULL,
        related_name="+",
        blank=True,
        null=True,
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductionRunQuerySet.as_manager()

    class Meta:
        db_table = "production_run"
        ordering = ["-production_date", "-production_number"]
        indexes = [
            models.Index(fields=["status"], name="idx_prod_run_status"),
            models.Index(fields=["production_date"], name="idx_prod_run_date"),
        ]

    def __str__(self) -> str:
        return self.production_number

    @property
    def efficiency_percentage(self) -> Decimal:
        return efficiency(self.actual_output, self.target_quantity)

    @property
    def total_material_cost(self) -> Decimal:
        return sum((item.total_cost for item in self.items.all()), Decimal("0"))


class ProductionRunItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    production_run = models.ForeignKey(ProductionRun, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="production_run_items")
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    planned_quantity = models.DecimalField(max_digits=15, decimal_places=3)
    actual_quantity = models.DecimalField(max_digits=15, decimal_places=3, blank=True, null=True)
    variance = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    unit_of_measure = models.CharField(max_length=16, blank=True, null=True)
    unit_cost = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    total_cost = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "production_run_item"
        ordering = ["-percentage", "id"]

    def __str__(self) -> str:
        return f"{self.production_run} / {self.product}"

    @property
    def used_quantity(self) -> Decimal:
        return self.planned_quantity if self.actual_quantity is None else self.actual_quantity


class ProductionLoss(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    production_run = models.ForeignKey(ProductionRun, on_delete=models.CASCADE, related_name="losses")
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="production_losses",
        blank=True,
        null=True,
    )
    loss_type = models.CharField(max_length=32, choices=LossType.choices)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    estimated_value = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    reason = models.TextField()
    corrective_action = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "production_loss"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.production_run} {self.loss_type} {self.quantity}"
