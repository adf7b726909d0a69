from django.urls import path

from apps.core.api.v1.views import HealthView, WarehouseDetailView, WarehouseListView


urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("warehouses/", WarehouseListView.as_view(), name="warehouse-list"),
    path("warehouses/<uuid:warehouse_id>/", WarehouseDetailView.as_view(), name="warehouse-detail"),
]
