from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Customer, Product
from apps.formulas import engine, services
from apps.formulas.models import Formula, FormulaItem


class FormulaItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = FormulaItem
        fields = ("id", "product", "product_name", "percentage", "sequence")
        read_only_fields = ("id", "sequence")

    def validate_percentage(self, value):
        if value <= 0 or value > 100:
            raise serializers.ValidationError("percentage must be greater than 0 and at most 100.")
        return value


class FormulaSerializer(serializers.ModelSerializer):
    items = FormulaItemSerializer(many=True, required=False)
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)
    total_percentage = serializers.SerializerMethodField()
    is_valid = serializers.SerializerMethodField()

    class Meta:
        model = Formula
        fields = (
            "id",
            "formula_code",
            "name",
            "customer",
            "customer_name",
            "finished_product",
            "description",
            "is_active",
            "usage_count",
            "last_used_at",
            "items",
            "total_percentage",
            "is_valid",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "formula_code", "usage_count", "last_used_at", "created_at", "updated_at")

    def get_total_percentage(self, obj) -> Decimal:
        return engine.total_percentage(engine.formula_items(obj))

    def get_is_valid(self, obj) -> bool:
        return engine.is_valid(obj)

    def validate(self, attrs):
        if self.instance is None and not attrs.get("items"):
            raise serializers.ValidationError({"items": "Formula must have at least one item."})
        return attrs

    def create(self, validated_data):
        return services.create_formula(validated_data)

    def update(self, instance, validated_data):
        return services.update_formula(instance, validated_data)


class FormulaCalculateSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"))


class FormulaToggleSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()
    reason = serializers.CharField(max_length=500)


class FormulaCloneSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    finished_product = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), required=False, allow_null=True
    )
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_active = serializers.BooleanField(required=False)


class FormulaDeleteSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
