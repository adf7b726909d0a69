from django.contrib import admin

from apps.production.models import ProductionLoss, ProductionRun, ProductionRunItem


class ProductionRunItemInline(admin.TabularInline):
    model = ProductionRunItem
    extra = 0
    readonly_fields = ("planned_quantity", "actual_quantity", "variance", "unit_cost", "total_cost")


class ProductionLossInline(admin.TabularInline):
    model = ProductionLoss
    extra = 0


@admin.register(ProductionRun)
class ProductionRunAdmin(admin.ModelAdmin):
    list_display = (
        "production_number",
        "formula",
        "warehouse",
        "status",
        "production_date",
        "target_quantity",
        "actual_output",
        "wastage_percentage",
    )
    search_fields = ("production_number", "batch_number", "formula__name")
    list_filter = ("status", "warehouse")
    readonly_fields = ("status", "started_at", "completed_at", "cancelled_at", "output_batch")
    inlines = (ProductionRunItemInline, ProductionLossInline)
