import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit import logfiles, services
from apps.audit.models import LogLevel, SystemLog
from apps.audit.rendering import render
from apps.audit.serializers import (
    LogDeleteSerializer,
    LogExportQuerySerializer,
    LogFileQuerySerializer,
    LogListQuerySerializer,
    LogStatsQuerySerializer,
    SystemLogCreateSerializer,
    SystemLogSerializer,
)
from apps.common.permissions import RolePermission

logger = logging.getLogger(__name__)


class SystemLogViewSet(viewsets.GenericViewSet):
    queryset = SystemLog.objects.all()
    serializer_class = SystemLogSerializer
    permission_classes = [RolePermission]
    lookup_value_regex = "[0-9a-fA-F-]{32,36}"
    capability_map = {
        "list": ["logs.view"],
        "retrieve": ["logs.view"],
        "stats": ["logs.view"],
        "export": ["logs.view"],
        "files": ["logs.view"],
        "file_content": ["logs.view"],
        "create": ["logs.manage"],
        "bulk_delete": ["logs.manage"],
    }

    def _query(self, serializer_class):
        serializer = serializer_class(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        return dict(serializer.validated_data)

    def list(self, request):
        filters = self._query(LogListQuerySerializer)
        page = filters.pop("page")
        limit = filters.pop("limit")
        result = services.list_logs(filters, page=page, limit=limit)
        results = [render(log) for log in result["records"]]
        return Response(
            {
                "count": len(results),
                "results": results,
                "total": result["total"],
                "page": result["page"],
                "total_pages": result["total_pages"],
                "filters": result["filters"],
            }
        )

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(self.get_object()).data)

    def create(self, request):
        serializer = SystemLogCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        log = services.log_event(request, **serializer.validated_data)
        if log is None:
            return Response({"persisted": False}, status=status.HTTP_202_ACCEPTED)
        return Response(self.get_serializer(log).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        query = self._query(LogStatsQuerySerializer)
        return Response(services.get_stats(days=query["days"]))

    @action(detail=False, methods=["get"])
    def export(self, request):
        filters = self._query(LogExportQuerySerializer)
        export_format = filters.pop("format")
        filename = f"systemlogs_{timezone.localdate().isoformat()}.{export_format}"
        payload = services.export_logs(filters, export_format=export_format)
        if export_format == "json":
            response = Response(payload)
        else:
            response = HttpResponse(payload, content_type="text/csv; charset=utf-8")
        response["Content-Disposition"] = f"attachment; filename={filename}"
        return response

    @action(detail=False, methods=["post"], url_path="delete")
    def bulk_delete(self, request):
        serializer = LogDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        actor_id, actor_name = services.actor_of(request)
        deleted = services.delete_logs(
            dict(serializer.validated_data),
            confirm=request.data.get("confirm"),
            actor_id=actor_id,
            actor_name=actor_name,
            ip_address=services.get_client_ip(request),
        )
        logger.warning("%s deleted %s system logs", actor_name, deleted)
        return Response({"deleted_count": deleted})

    @action(detail=False, methods=["get"])
    def files(self, request):
        return Response({"files": logfiles.list_log_files()})

    @action(detail=False, methods=["get"], url_path=r"files/(?P<name>[^/]+)")
    def file_content(self, request, name=None):
        query = self._query(LogFileQuerySerializer)
        return Response(logfiles.read_log_file(name, lines=query.get("lines")))
