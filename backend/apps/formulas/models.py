import uuid

from django.db import models
from django.db.models import Q

from apps.catalog.models import Customer, Product


class FormulaQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def general(self):
        return self.filter(customer__isnull=True)

    def for_customer(self, customer_id):
        return self.filter(Q(customer__isnull=True) | Q(customer_id=customer_id))


class Formula(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    formula_code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="formulas",
        blank=True,
        null=True,
    )
    finished_product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="output_formulas",
        blank=True,
        null=True,
    )
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    usage_count = models.PositiveIntegerField(default=0)
    last_used_at = models.DateTimeField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = FormulaQuerySet.as_manager()

    class Meta:
        db_table = "formulas_formula"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.formula_code} - {self.name}"


class FormulaItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    formula = models.ForeignKey(Formula, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="formula_items")
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    sequence = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "formulas_formula_item"
        ordering = ["sequence", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["formula", "product"],
                name="uq_formulas_item_formula_product",
            )
        ]

    def __str__(self) -> str:
        return f"{self.formula.formula_code} - {self.product.name} {self.percentage}%"
