from rest_framework.routers import DefaultRouter

from apps.catalog.api.v1.views import CustomerViewSet, ProductViewSet


router = DefaultRouter()
router.register("customers", CustomerViewSet, basename="customer")
router.register("products", ProductViewSet, basename="product")

urlpatterns = router.urls
