from django.urls import path

from apps.system.views import (
    DashboardStatsView,
    MonthlyRevenueView,
    PrivacyPolicyView,
    PublicSettingsView,
    SystemSettingsView,
    TermsView,
)

urlpatterns = [
    path("settings/", SystemSettingsView.as_view(), name="system-settings"),
    path("settings/public/", PublicSettingsView.as_view(), name="system-settings-public"),
    path("settings/terms/", TermsView.as_view(), name="system-settings-terms"),
    path("settings/privacy/", PrivacyPolicyView.as_view(), name="system-settings-privacy"),
    path("stats/", DashboardStatsView.as_view(), name="dashboard-stats"),
    path("stats/monthly-revenue/", MonthlyRevenueView.as_view(), name="dashboard-monthly-revenue"),
]
