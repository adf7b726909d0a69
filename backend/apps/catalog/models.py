import uuid

from django.db import models


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=64, unique=True)
    phone = models.CharField(max_length=64, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_customer"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    class ProductType(models.TextChoices):
        RAW_MATERIAL = "raw_material", "Raw Material"
        FINISHED_GOOD = "finished_good", "Finished Good"
        CONSUMABLE = "consumable", "Consumable"
        PACKAGING = "packaging", "Packaging"

    class Unit(models.TextChoices):
        KG = "kg", "Kilogram"
        TON = "ton", "Metric Ton"
        BAG = "bag", "Bag"
        PIECE = "piece", "Piece"
        LITRE = "litre", "Litre"
        UNIT = "unit", "Unit"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    product_type = models.CharField(max_length=32, choices=ProductType.choices, default=ProductType.RAW_MATERIAL)
    unit_of_measure = models.CharField(max_length=16, choices=Unit.choices, default=Unit.KG)
    cost_price = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    reorder_level = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    critical_level = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    is_active = models.BooleanField(default=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_product"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
