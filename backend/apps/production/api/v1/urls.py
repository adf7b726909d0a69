from rest_framework.routers import DefaultRouter

from apps.production.api.v1.views import ProductionRunViewSet


router = DefaultRouter()
router.register("production-runs", ProductionRunViewSet, basename="production-run")

urlpatterns = router.urls
