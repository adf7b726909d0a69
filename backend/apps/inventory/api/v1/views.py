from datetime import timedelta

from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.config import get_production_config
from apps.inventory import services
from apps.inventory.api.v1.mixins import IdempotentCreateMixin
from apps.inventory.api.v1.serializers import (
    InventoryBatchSerializer,
    StockAdjustmentSerializer,
    StockLevelSerializer,
    StockLossSerializer,
    StockMovementSerializer,
    StockReceiptSerializer,
    StockTransferSerializer,
)
from apps.inventory.models import (
    BatchStatus,
    InventoryBatch,
    StockLevel,
    StockMovement,
    StockReceipt,
)


class StockReceiptViewSet(
    IdempotentCreateMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = StockReceipt.objects.select_related("warehouse")
    serializer_class = StockReceiptSerializer
    idempotency_operation = "stock_receipt"


class StockAdjustmentView(APIView):
    def post(self, request):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = services.adjust_stock(**serializer.validated_data)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class StockTransferView(APIView):
    def post(self, request):
        serializer = StockTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movements = services.transfer_stock(**serializer.validated_data)
        return Response(
            {"movements": StockMovementSerializer(movements, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class StockLossView(APIView):
    def post(self, request):
        serializer = StockLossSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        movement = services.write_off(
            data["batch"],
            data["quantity"],
            data["loss_type"],
            data["reason"],
            notes=data.get("notes"),
        )
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class InventoryBatchViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InventoryBatchSerializer

    def get_queryset(self):
        queryset = InventoryBatch.objects.select_related("product", "warehouse")
        params = self.request.query_params

        if params.get("product"):
            queryset = queryset.filter(product_id=params["product"])
        if params.get("warehouse"):
            queryset = queryset.filter(warehouse_id=params["warehouse"])
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])

        if params.get("expiring") in {"1", "true", "True"}:
            days = params.get("days")
            days = int(days) if days and days.isdigit() else get_production_config().expiry_warning_days
            today = timezone.localdate()
            queryset = queryset.filter(
                status=BatchStatus.ACTIVE,
                expiry_date__gte=today,
                expiry_date__lte=today + timedelta(days=days),
            ).order_by("expiry_date", "batch_number")

        return queryset


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockMovementSerializer

    def get_queryset(self):
        queryset = StockMovement.objects.select_related("batch")
        params = self.request.query_params

        if params.get("product"):
            queryset = queryset.filter(product_id=params["product"])
        if params.get("warehouse"):
            queryset = queryset.filter(warehouse_id=params["warehouse"])
        if params.get("batch"):
            queryset = queryset.filter(batch_id=params["batch"])
        if params.get("type"):
            queryset = queryset.filter(movement_type=params["type"])

        direction = params.get("direction")
        if direction == "in":
            queryset = queryset.inbound()
        elif direction == "out":
            queryset = queryset.outbound()

        if params.get("reference_type"):
            queryset = queryset.filter(reference_type=params["reference_type"])
        if params.get("reference_id"):
            queryset = queryset.filter(reference_id=params["reference_id"])
        return queryset


class StockLevelListView(APIView):
    def levels(self):
        return StockLevel.objects.all()

    def get(self, request):
        queryset = self.levels().select_related("product", "warehouse")
        if request.query_params.get("warehouse"):
            queryset = queryset.filter(warehouse_id=request.query_params["warehouse"])
        if request.query_params.get("product"):
            queryset = queryset.filter(product_id=request.query_params["product"])
        if request.query_params.get("in_stock") in {"1", "true", "True"}:
            queryset = queryset.filter(quantity__gt=0)
        return Response(StockLevelSerializer(queryset, many=True).data)


class LowStockLevelListView(StockLevelListView):
    def levels(self):
        return StockLevel.objects.low()


class CriticalStockLevelListView(StockLevelListView):
    def levels(self):
        return StockLevel.objects.critical()
