from django.db import models

EMPTY_SENTINELS = ("", "null", "undefined")


class SystemLogQuerySet(models.QuerySet):
    def business_events(self):
        from apps.audit.models import BUSINESS_EVENT_SOURCES

        return self.filter(source__in=BUSINESS_EVENT_SOURCES)

    def in_range(self, start=None, end=None):
        queryset = self
        if start:
            queryset = queryset.filter(timestamp__gte=start)
        if end:
            queryset = queryset.filter(timestamp__lte=end)
        return queryset

    def apply_filters(self, filters, default_to_business_events=True):
        """
        Narrow the queryset by the validated log filter mapping. Without an
        explicit ``source`` only business events are returned.
        """
        queryset = self
        source = filters.get("source")
        if source:
            queryset = queryset.filter(source=source)
        elif default_to_business_events:
            queryset = queryset.business_events()

        if filters.get("level"):
            queryset = queryset.filter(level=filters["level"])
        if filters.get("user"):
            queryset = queryset.filter(user_id=filters["user"])
        for field in ("module", "action", "entity"):
            if filters.get(field):
                queryset = queryset.filter(**{field: filters[field]})
        if filters.get("search"):
            queryset = queryset.filter(message__icontains=filters["search"])
        return queryset.in_range(filters.get("startDate"), filters.get("endDate"))

    def distinct_values(self, field):
        return list(
            self.exclude(**{f"{field}__isnull": True})
            .exclude(**{f"{field}__in": EMPTY_SENTINELS})
            .order_by(field)
            .values_list(field, flat=True)
            .distinct()
        )
