from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.formulas.api.v1.views import CustomerFormulaListView, FormulaViewSet


router = DefaultRouter()
router.register("formulas", FormulaViewSet, basename="formula")

urlpatterns = [
    path(
        "formulas/for-customer/<uuid:customer_id>/",
        CustomerFormulaListView.as_view(),
        name="formula-for-customer",
    ),
]

urlpatterns += router.urls
