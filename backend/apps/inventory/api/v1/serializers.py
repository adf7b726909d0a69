from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Product
from apps.core.models import Warehouse
from apps.inventory import services
from apps.inventory.models import InventoryBatch, StockLevel, StockMovement, StockReceipt

POSITIVE = Decimal("0.001")


class InventoryBatchSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)
    total_value = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)

    class Meta:
        model = InventoryBatch
        fields = (
            "id",
            "batch_number",
            "product",
            "product_name",
            "warehouse",
            "warehouse_code",
            "production_date",
            "expiry_date",
            "initial_quantity",
            "current_quantity",
            "unit_cost",
            "total_value",
            "source_type",
            "source_id",
            "status",
            "notes",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source="batch.batch_number", read_only=True, default=None)
    direction = serializers.SerializerMethodField()

    class Meta:
        model = StockMovement
        fields = (
            "id",
            "reference_number",
            "product",
            "warehouse",
            "batch",
            "batch_number",
            "movement_type",
            "direction",
            "quantity",
            "unit_cost",
            "total_value",
            "quantity_before",
            "quantity_after",
            "reference_type",
            "reference_id",
            "from_warehouse",
            "to_warehouse",
            "reason",
            "notes",
            "created_at",
        )
        read_only_fields = fields

    def get_direction(self, obj) -> str:
        return "in" if obj.is_inbound else "out"


class StockLevelSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)
    reorder_level = serializers.DecimalField(
        source="product.reorder_level", max_digits=15, decimal_places=3, read_only=True
    )
    critical_level = serializers.DecimalField(
        source="product.critical_level", max_digits=15, decimal_places=3, read_only=True
    )

    class Meta:
        model = StockLevel
        fields = (
            "id",
            "product",
            "product_sku",
            "product_name",
            "warehouse",
            "warehouse_code",
            "quantity",
            "reorder_level",
            "critical_level",
            "updated_at",
        )
        read_only_fields = fields


class StockReceiptLineSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.filter(is_active=True))
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    unit_cost = serializers.DecimalField(max_digits=15, decimal_places=2, required=False)
    batch_number = serializers.CharField(max_length=100, required=False)
    production_date = serializers.DateField(required=False, allow_null=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("quantity must be greater than 0.")
        return value

    def validate_unit_cost(self, value):
        if value < 0:
            raise serializers.ValidationError("unit_cost cannot be negative.")
        return value

    def validate_batch_number(self, value):
        normalized = value.strip().upper()
        if InventoryBatch.objects.filter(batch_number=normalized).exists():
            raise serializers.ValidationError("batch_number already exists.")
        return normalized

    def validate(self, attrs):
        production_date = attrs.get("production_date")
        expiry_date = attrs.get("expiry_date")
        if production_date and expiry_date and expiry_date < production_date:
            raise serializers.ValidationError({"expiry_date": "expiry_date cannot be before production_date."})
        return attrs


class StockReceiptSerializer(serializers.ModelSerializer):
    lines = StockReceiptLineSerializer(many=True, write_only=True)
    batches = serializers.SerializerMethodField()

    class Meta:
        model = StockReceipt
        fields = (
            "id",
            "warehouse",
            "supplier_name",
            "reference_number",
            "received_at",
            "metadata",
            "lines",
            "batches",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "batches", "created_at", "updated_at")

    def get_batches(self, obj):
        return InventoryBatchSerializer(services.receipt_batches(obj), many=True).data

    def validate_warehouse(self, value):
        if not value.is_active:
            raise serializers.ValidationError("warehouse is inactive.")
        return value

    def validate(self, attrs):
        lines = attrs.get("lines", [])
        if not lines:
            raise serializers.ValidationError({"lines": "At least one line is required."})

        numbers = [line["batch_number"] for line in lines if line.get("batch_number")]
        if len(numbers) != len(set(numbers)):
            raise serializers.ValidationError({"lines": "batch_number values must be unique within a receipt."})

        warehouse = attrs.get("warehouse")
        reference_number = attrs.get("reference_number")
        if StockReceipt.objects.filter(warehouse=warehouse, reference_number=reference_number).exists():
            raise serializers.ValidationError(
                {"reference_number": "A receipt with this reference already exists in the warehouse."}
            )
        return attrs

    def create(self, validated_data):
        return services.create_receipt(validated_data)


class StockAdjustmentSerializer(serializers.Serializer):
    direction = serializers.ChoiceField(choices=("in", "out"))
    batch = serializers.PrimaryKeyRelatedField(queryset=InventoryBatch.objects.all(), required=False)
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False)
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=POSITIVE)
    unit_cost = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, min_value=Decimal("0"))
    expiry_date = serializers.DateField(required=False, allow_null=True)
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get("batch") is None:
            if attrs["direction"] == "out":
                raise serializers.ValidationError({"batch": "batch is required for outbound adjustments."})
            if attrs.get("product") is None or attrs.get("warehouse") is None:
                raise serializers.ValidationError(
                    {"batch": "Provide a batch, or a product and warehouse to open a new batch."}
                )
        return attrs


class StockTransferSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    from_warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    to_warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=POSITIVE)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs["from_warehouse"] == attrs["to_warehouse"]:
            raise serializers.ValidationError({"to_warehouse": "to_warehouse must differ from from_warehouse."})
        return attrs


class StockLossSerializer(serializers.Serializer):
    batch = serializers.PrimaryKeyRelatedField(queryset=InventoryBatch.objects.all())
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=POSITIVE)
    loss_type = serializers.ChoiceField(choices=("loss", "drying"), default="loss")
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)
