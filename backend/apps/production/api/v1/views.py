from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.production import processor
from apps.production.api.v1.serializers import (
    ProductionCancelSerializer,
    ProductionCompleteSerializer,
    ProductionLossSerializer,
    ProductionRunSerializer,
    ProductionSummaryQuerySerializer,
)
from apps.production.models import ProductionRun


class ProductionRunViewSet(viewsets.ModelViewSet):
    serializer_class = ProductionRunSerializer
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        queryset = ProductionRun.objects.select_related("formula", "warehouse").prefetch_related(
            "items__product", "losses__product"
        )
        params = self.request.query_params

        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("warehouse"):
            queryset = queryset.filter(warehouse_id=params["warehouse"])
        if params.get("formula"):
            queryset = queryset.filter(formula_id=params["formula"])
        queryset = queryset.between(params.get("date_from"), params.get("date_to"))

        search = (params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                Q(production_number__icontains=search)
                | Q(batch_number__icontains=search)
                | Q(formula__name__icontains=search)
            )
        return queryset

    def perform_destroy(self, instance):
        processor.delete_planned(instance)

    def _respond(self, run, status_code=status.HTTP_200_OK):
        run = self.get_queryset().get(pk=run.pk)
        return Response(self.get_serializer(run).data, status=status_code)

    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        run = processor.start(self.get_object())
        return self._respond(run)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        run = self.get_object()
        serializer = ProductionCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        run = processor.complete(
            run,
            data["actual_output"],
            losses=data.get("losses"),
            item_usage=data.get("items"),
            wastage_quantity=data.get("wastage_quantity"),
            notes=data.get("notes"),
        )
        return self._respond(run)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        run = self.get_object()
        serializer = ProductionCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        run = processor.cancel(run, serializer.validated_data["reason"])
        return self._respond(run)

    @action(detail=True, methods=["get", "post"])
    def losses(self, request, pk=None):
        run = self.get_object()
        if request.method == "GET":
            return Response(ProductionLossSerializer(run.losses.select_related("product"), many=True).data)

        serializer = ProductionLossSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        loss = processor.record_loss(run, serializer.validated_data)
        return Response(ProductionLossSerializer(loss).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def materials(self, request, pk=None):
        return Response(processor.check_materials(self.get_object()))

    @action(detail=False, methods=["get"])
    def summary(self, request):
        serializer = ProductionSummaryQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(
            processor.summary(
                serializer.validated_data.get("start_date"),
                serializer.validated_data.get("end_date"),
            )
        )
