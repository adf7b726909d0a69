from django.contrib import admin

from apps.formulas.models import Formula, FormulaItem


class FormulaItemInline(admin.TabularInline):
    model = FormulaItem
    extra = 0


@admin.register(Formula)
class FormulaAdmin(admin.ModelAdmin):
    list_display = ("formula_code", "name", "customer", "finished_product", "is_active", "usage_count", "last_used_at")
    search_fields = ("formula_code", "name", "customer__name")
    list_filter = ("is_active",)
    inlines = (FormulaItemInline,)
