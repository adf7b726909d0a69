from decimal import Decimal

from rest_framework import serializers

from apps.formulas.models import Formula
from apps.production import processor
from apps.production.models import ProductionLoss, ProductionRun, ProductionRunItem


class ProductionRunItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = ProductionRunItem
        fields = (
            "id",
            "product",
            "product_name",
            "percentage",
            "planned_quantity",
            "actual_quantity",
            "variance",
            "unit_of_measure",
            "unit_cost",
            "total_cost",
        )
        read_only_fields = fields


class ProductionLossSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True, default=None)
    estimated_value = serializers.DecimalField(max_digits=15, decimal_places=2, required=False)

    class Meta:
        model = ProductionLoss
        fields = (
            "id",
            "product",
            "product_name",
            "loss_type",
            "quantity",
            "estimated_value",
            "reason",
            "corrective_action",
            "created_at",
        )
        read_only_fields = ("id", "created_at")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("quantity must be greater than 0.")
        return value


class ProductionRunSerializer(serializers.ModelSerializer):
    formula_name = serializers.CharField(source="formula.name", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)
    items = ProductionRunItemSerializer(many=True, read_only=True)
    losses = ProductionLossSerializer(many=True, read_only=True)
    efficiency_percentage = serializers.DecimalField(max_digits=9, decimal_places=2, read_only=True)

    class Meta:
        model = ProductionRun
        fields = (
            "id",
            "production_number",
            "formula",
            "formula_name",
            "finished_product",
            "warehouse",
            "warehouse_code",
            "production_date",
            "target_quantity",
            "actual_output",
            "wastage_quantity",
            "wastage_percentage",
            "efficiency_percentage",
            "batch_number",
            "expiry_date",
            "status",
            "started_at",
            "completed_at",
            "cancelled_at",
            "duration_minutes",
            "cancellation_reason",
            "output_batch",
            "notes",
            "items",
            "losses",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "production_number",
            "finished_product",
            "actual_output",
            "wastage_quantity",
            "wastage_percentage",
            "status",
            "started_at",
            "completed_at",
            "cancelled_at",
            "duration_minutes",
            "cancellation_reason",
            "output_batch",
            "created_at",
            "updated_at",
        )

    def validate_target_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("target_quantity must be greater than 0.")
        return value

    def validate_formula(self, value: Formula):
        if self.instance is not None and value != self.instance.formula:
            raise serializers.ValidationError("formula cannot be changed once a run is planned.")
        if not value.is_active:
            raise serializers.ValidationError("formula is inactive.")
        return value

    def validate(self, attrs):
        production_date = attrs.get("production_date") or getattr(self.instance, "production_date", None)
        expiry_date = attrs.get("expiry_date")
        if production_date and expiry_date and expiry_date <= production_date:
            raise serializers.ValidationError({"expiry_date": "expiry_date must be after production_date."})
        return attrs

    def create(self, validated_data):
        return processor.plan(
            validated_data["formula"],
            validated_data["warehouse"],
            validated_data["target_quantity"],
            production_date=validated_data.get("production_date"),
            batch_number=validated_data.get("batch_number"),
            expiry_date=validated_data.get("expiry_date"),
            notes=validated_data.get("notes"),
        )

    def update(self, instance, validated_data):
        validated_data.pop("formula", None)
        return processor.update_plan(instance, validated_data)


class ItemUsageSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity_used = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0"))


class ProductionCompleteSerializer(serializers.Serializer):
    actual_output = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0"))
    wastage_quantity = serializers.DecimalField(
        max_digits=15,
        decimal_places=3,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    items = ItemUsageSerializer(many=True, required=False)
    losses = ProductionLossSerializer(many=True, required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class ProductionCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class ProductionSummaryQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start_date = attrs.get("start_date")
        end_date = attrs.get("end_date")
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({"end_date": "end_date cannot be before start_date."})
        return attrs
