from rest_framework.routers import DefaultRouter

from apps.timetracking.views import TimeEntryViewSet

router = DefaultRouter()
router.register("time-entries", TimeEntryViewSet, basename="time-entry")

urlpatterns = router.urls
