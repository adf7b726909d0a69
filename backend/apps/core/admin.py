from django.contrib import admin

from apps.core.models import IdempotencyRecord, Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "location", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "code")


@admin.register(IdempotencyRecord)
class IdempotencyRecordAdmin(admin.ModelAdmin):
    list_display = ("source", "operation", "status", "started_at", "finished_at")
    search_fields = ("source", "operation", "idempotency_key")
    list_filter = ("status", "source", "operation")
