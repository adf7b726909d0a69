from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.catalog.models import Customer
from apps.formulas import services
from apps.formulas.api.v1.serializers import (
    FormulaCalculateSerializer,
    FormulaCloneSerializer,
    FormulaDeleteSerializer,
    FormulaSerializer,
    FormulaToggleSerializer,
)
from apps.formulas.models import Formula


class FormulaViewSet(viewsets.ModelViewSet):
    serializer_class = FormulaSerializer

    def get_queryset(self):
        queryset = Formula.objects.select_related("customer").prefetch_related("items__product")
        params = self.request.query_params

        search = (params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(formula_code__icontains=search))

        customer = params.get("customer")
        if customer == "general":
            queryset = queryset.general()
        elif customer:
            queryset = queryset.filter(customer_id=customer)

        is_active = params.get("is_active")
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active in {"1", "true", "True"})

        return queryset.order_by("name")

    def destroy(self, request, *args, **kwargs):
        formula = self.get_object()
        serializer = FormulaDeleteSerializer(data=request.data or request.query_params)
        serializer.is_valid(raise_exception=True)
        deleted = services.delete_formula(formula, serializer.validated_data["reason"])
        if deleted:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(FormulaSerializer(formula).data)

    @action(detail=True, methods=["post"])
    def calculate(self, request, pk=None):
        formula = self.get_object()
        serializer = FormulaCalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quantity = serializer.validated_data["quantity"]
        requirements = services.requirements_for(formula, quantity)
        return Response(
            {
                "formula": str(formula.id),
                "total_quantity": quantity,
                "requirements": [
                    {
                        "product": str(req.product_id),
                        "product_name": req.product.name,
                        "percentage": req.percentage,
                        "quantity": req.quantity,
                    }
                    for req in requirements
                ],
            }
        )

    @action(detail=True, methods=["post"], url_path="toggle-active")
    def toggle_active(self, request, pk=None):
        formula = self.get_object()
        serializer = FormulaToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        formula = services.toggle_active(
            formula,
            serializer.validated_data["is_active"],
            serializer.validated_data["reason"],
        )
        return Response(FormulaSerializer(formula).data)

    @action(detail=True, methods=["post"])
    def clone(self, request, pk=None):
        formula = self.get_object()
        serializer = FormulaCloneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        clone = services.clone_formula(formula, serializer.validated_data)
        return Response(FormulaSerializer(clone).data, status=status.HTTP_201_CREATED)


class CustomerFormulaListView(APIView):
    def get(self, request, customer_id):
        customer = get_object_or_404(Customer, id=customer_id)
        formulas = services.available_for_customer(customer.id)
        return Response(FormulaSerializer(formulas, many=True).data)
