from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce, ExtractMonth
from django.utils import timezone
from rest_framework import generics, serializers
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.audit.diff import compute_changes, snapshot
from apps.audit.models import LogSource
from apps.audit.services import actor_of, get_client_ip
from apps.common.exceptions import ValidationError
from apps.common.permissions import RolePermission
from apps.customers.models import Customer
from apps.invoices.models import Invoice, InvoiceStatus
from apps.orders.models import Order
from apps.system.models import get_or_create_settings
from apps.system.serializers import PublicSettingsSerializer, SystemSettingsSerializer
from apps.timetracking.models import TimeEntry

MONEY = DecimalField(max_digits=16, decimal_places=2)
MONTH_NAMES = ["Jan", "Feb", "Mär", "Apr", "Mai", "Jun", "Jul", "Aug", "Sep", "Okt", "Nov", "Dez"]
SNAPSHOT_EXCLUDE = ["id", "updated_by", "updated_at"]


class SystemSettingsView(generics.RetrieveUpdateAPIView):
    serializer_class = SystemSettingsSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "get": ["settings.view"],
        "put": ["settings.manage"],
        "patch": ["settings.manage"],
    }

    def get_object(self):
        return get_or_create_settings()

    def perform_update(self, serializer):
        before = snapshot(serializer.instance, exclude=SNAPSHOT_EXCLUDE)
        try:
            instance = serializer.save(updated_by=self.request.user)
        except DjangoValidationError as exc:
            raise ValidationError(" ".join(exc.messages))
        actor_id, actor_name = actor_of(self.request)
        compute_changes(
            "setting",
            instance.pk,
            "Systemeinstellungen",
            before,
            snapshot(instance, exclude=SNAPSHOT_EXCLUDE),
            actor_id,
            actor_name,
            message="Systemeinstellungen wurden aktualisiert",
            source=LogSource.ADMIN_ACTION,
            ip_address=get_client_ip(self.request),
        )


class PublicSettingsView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        return Response(PublicSettingsSerializer(get_or_create_settings()).data)


class TermsView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        return Response({"terms_and_conditions": get_or_create_settings().terms_and_conditions})


class PrivacyPolicyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        return Response({"privacy_policy": get_or_create_settings().privacy_policy})


class MonthlyRevenueQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)


class DashboardStatsMixin:
    permission_classes = [RolePermission]
    capability_map = {"get": ["stats.view"]}

    @staticmethod
    def _amount(invoices):
        return invoices.aggregate(total=Coalesce(Sum("total_amount"), Value(Decimal("0.00")), output_field=MONEY))[
            "total"
        ]


class DashboardStatsView(DashboardStatsMixin, generics.GenericAPIView):
    def get(self, request, *args, **kwargs):
        invoices = Invoice.objects.all()
        return Response(
            {
                "users": get_user_model().objects.count(),
                "customers": Customer.objects.count(),
                "orders": Order.objects.count(),
                "invoices": invoices.count(),
                "time_entries": TimeEntry.objects.count(),
                "revenue": self._amount(invoices.filter(status=InvoiceStatus.PAID)),
                "open_amount": self._amount(invoices.exclude(status__in=[InvoiceStatus.PAID, InvoiceStatus.CANCELLED])),
            }
        )


class MonthlyRevenueView(DashboardStatsMixin, generics.GenericAPIView):
    def get(self, request, *args, **kwargs):
        query_serializer = MonthlyRevenueQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)
        year = query_serializer.validated_data.get("year") or timezone.localdate().year

        rows = (
            Invoice.objects.filter(issue_date__year=year)
            .annotate(month=ExtractMonth("issue_date"))
            .values("month")
            .annotate(
                total=Coalesce(Sum("total_amount"), Value(Decimal("0.00")), output_field=MONEY),
                paid=Coalesce(
                    Sum("total_amount", filter=Q(status=InvoiceStatus.PAID)),
                    Value(Decimal("0.00")),
                    output_field=MONEY,
                ),
                invoices=Count("id"),
            )
            .order_by("month")
        )
        by_month = {row["month"]: row for row in rows}

        months = []
        for month, name in enumerate(MONTH_NAMES, start=1):
            row = by_month.get(month)
            total = row["total"] if row else Decimal("0.00")
            paid = row["paid"] if row else Decimal("0.00")
            months.append(
                {
                    "month": month,
                    "month_name": name,
                    "total": total,
                    "paid": paid,
                    "unpaid": total - paid,
                    "invoices": row["invoices"] if row else 0,
                }
            )
        return Response({"year": year, "months": months})
