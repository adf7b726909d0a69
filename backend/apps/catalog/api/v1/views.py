from django.db.models import Q
from rest_framework import viewsets

from apps.catalog.api.v1.serializers import CustomerSerializer, ProductSerializer
from apps.catalog.models import Customer, Product


class CustomerViewSet(viewsets.ModelViewSet):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer

    def get_queryset(self):
        queryset = Product.objects.order_by("name")
        active_only = self.request.query_params.get("active")
        if active_only in {"1", "true", "True"}:
            queryset = queryset.filter(is_active=True)
        product_type = self.request.query_params.get("type")
        if product_type:
            queryset = queryset.filter(product_type=product_type)
        query = (self.request.query_params.get("q") or "").strip()
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(sku__icontains=query))
        return queryset
