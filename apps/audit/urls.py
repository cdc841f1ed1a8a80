from rest_framework.routers import DefaultRouter

from apps.audit.views import SystemLogViewSet

router = DefaultRouter()
router.register("logs", SystemLogViewSet, basename="systemlog")

urlpatterns = router.urls
