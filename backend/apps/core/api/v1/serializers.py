from rest_framework import serializers

from apps.core.models import Warehouse


class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ("id", "name", "code", "location", "is_active")


class WarehouseWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ("name", "code", "location", "is_active")
        extra_kwargs = {"is_active": {"required": False}, "location": {"required": False}}

    def validate_code(self, value):
        normalized = value.strip().upper().replace(" ", "_")
        if not normalized:
            raise serializers.ValidationError("Warehouse code is required.")
        return normalized
