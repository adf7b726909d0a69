from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.inventory.api.v1.views import (
    CriticalStockLevelListView,
    InventoryBatchViewSet,
    LowStockLevelListView,
    StockAdjustmentView,
    StockLevelListView,
    StockLossView,
    StockMovementViewSet,
    StockReceiptViewSet,
    StockTransferView,
)


router = DefaultRouter()
router.register("stock/receipts", StockReceiptViewSet, basename="stock-receipt")
router.register("stock/batches", InventoryBatchViewSet, basename="stock-batch")
router.register("stock/movements", StockMovementViewSet, basename="stock-movement")

urlpatterns = [
    path("stock/adjustments/", StockAdjustmentView.as_view(), name="stock-adjustment"),
    path("stock/transfers/", StockTransferView.as_view(), name="stock-transfer"),
    path("stock/losses/", StockLossView.as_view(), name="stock-loss"),
    path("stock/levels/", StockLevelListView.as_view(), name="stock-level-list"),
    path("stock/levels/low/", LowStockLevelListView.as_view(), name="stock-level-low"),
    path("stock/levels/critical/", CriticalStockLevelListView.as_view(), name="stock-level-critical"),
] + router.urls
