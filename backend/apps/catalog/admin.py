from django.contrib import admin

from apps.catalog.models import Customer, Product


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "phone", "is_active")
    search_fields = ("name", "code")
    list_filter = ("is_active",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "product_type", "unit_of_measure", "cost_price", "is_active")
    search_fields = ("sku", "name")
    list_filter = ("product_type", "unit_of_measure", "is_active")
