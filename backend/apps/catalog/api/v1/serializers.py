from rest_framework import serializers

from apps.catalog.models import Customer, Product


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ("id", "name", "code", "phone", "is_active", "metadata", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = (
            "id",
            "sku",
            "name",
            "product_type",
            "unit_of_measure",
            "cost_price",
            "reorder_level",
            "critical_level",
            "is_active",
            "metadata",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def validate_sku(self, value):
        normalized = value.strip().upper()
        if not normalized:
            raise serializers.ValidationError("sku is required.")
        return normalized

    def validate_cost_price(self, value):
        if value < 0:
            raise serializers.ValidationError("cost_price cannot be negative.")
        return value

    def validate(self, attrs):
        reorder = attrs.get("reorder_level", getattr(self.instance, "reorder_level", 0))
        critical = attrs.get("critical_level", getattr(self.instance, "critical_level", 0))
        if reorder < 0 or critical < 0:
            raise serializers.ValidationError({"reorder_level": ["Stock thresholds cannot be negative."]})
        if reorder and critical > reorder:
            raise serializers.ValidationError({"critical_level": ["critical_level cannot exceed reorder_level."]})
        return attrs
