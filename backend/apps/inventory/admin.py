from django.contrib import admin

from apps.inventory.models import InventoryBatch, StockLevel, StockMovement, StockReceipt


@admin.register(InventoryBatch)
class InventoryBatchAdmin(admin.ModelAdmin):
    list_display = (
        "batch_number",
        "product",
        "warehouse",
        "status",
        "current_quantity",
        "initial_quantity",
        "unit_cost",
        "expiry_date",
    )
    search_fields = ("batch_number", "product__sku", "product__name")
    list_filter = ("status", "source_type", "warehouse")


@admin.register(StockLevel)
class StockLevelAdmin(admin.ModelAdmin):
    list_display = ("product", "warehouse", "quantity", "updated_at")
    list_filter = ("warehouse",)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("reference_number", "movement_type", "product", "warehouse", "quantity", "created_at")
    search_fields = ("reference_number", "reference_id", "batch__batch_number")
    list_filter = ("movement_type", "warehouse")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockReceipt)
class StockReceiptAdmin(admin.ModelAdmin):
    list_display = ("reference_number", "warehouse", "supplier_name", "received_at")
    search_fields = ("reference_number", "supplier_name")
