from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.api.v1.serializers import WarehouseSerializer, WarehouseWriteSerializer
from apps.core.exceptions import BusinessRuleError
from apps.core.models import Warehouse


class HealthView(APIView):
    authentication_classes = []
    permission_classes = []

    def get(self, request):
        return Response({"status": "ok", "service": "millops", "version": "v1"})


class WarehouseListView(APIView):
    def get(self, request):
        include_inactive = request.query_params.get("include_inactive") in {"1", "true", "True"}
        queryset = Warehouse.objects.all() if include_inactive else Warehouse.objects.filter(is_active=True)
        search = (request.query_params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(code__icontains=search))
        queryset = queryset.order_by("name")
        return Response(WarehouseSerializer(queryset, many=True).data)

    def post(self, request):
        serializer = WarehouseWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        warehouse = serializer.save()
        return Response(WarehouseSerializer(warehouse).data, status=status.HTTP_201_CREATED)


class WarehouseDetailView(APIView):
    def get(self, request, warehouse_id):
        warehouse = get_object_or_404(Warehouse, id=warehouse_id)
        return Response(WarehouseSerializer(warehouse).data)

    def patch(self, request, warehouse_id):
        warehouse = get_object_or_404(Warehouse, id=warehouse_id)
        serializer = WarehouseWriteSerializer(warehouse, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(WarehouseSerializer(warehouse).data)

    def delete(self, request, warehouse_id):
        warehouse = get_object_or_404(Warehouse, id=warehouse_id)
        if warehouse.batches.filter(current_quantity__gt=0).exists():
            raise BusinessRuleError("Cannot delete a warehouse that still holds stock.")
        if warehouse.stock_movements.exists() or warehouse.production_runs.exists():
            warehouse.is_active = False
            warehouse.save(update_fields=["is_active", "updated_at"])
            return Response(WarehouseSerializer(warehouse).data)
        warehouse.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
