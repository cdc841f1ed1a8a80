"""
Logging configuration helpers: request ids on every record and a file handler
that rotates both daily and once the file grows past a size cap.
"""
import logging
import os
import re
import threading
import uuid
from logging.handlers import TimedRotatingFileHandler

_request_context = threading.local()


def get_request_id():
    return getattr(_request_context, "request_id", None)


class RequestIDFilter(logging.Filter):
    def filter(self, record):
        if not getattr(record, "request_id", None):
            record.request_id = get_request_id() or "N/A"
        return True


class RequestIDMiddleware:
    """
    Attach a short request id to each request, its log lines and the
    ``X-Request-ID`` response header.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request.request_id = request_id
        _request_context.request_id = request_id
        try:
            response = self.get_response(request)
        finally:
            _request_context.request_id = None
        response["X-Request-ID"] = request_id
        return response


class SizedTimedRotatingFileHandler(TimedRotatingFileHandler):
    """
    ``TimedRotatingFileHandler`` that also rolls over when the file reaches
    ``maxBytes``. Rotated files are named ``<stem>-<YYYY-MM-DD>[.<n>].log`` and
    only the newest ``backupCount`` days are kept.
    """

    def __init__(self, filename, when="midnight", interval=1, backupCount=0, maxBytes=0, encoding=None, delay=False, utc=False):
        super().__init__(
            filename,
            when=when,
            interval=interval,
            backupCount=backupCount,
            encoding=encoding,
            delay=delay,
            utc=utc,
        )
        self.maxBytes = maxBytes
        self.namer = self._dated_name
        directory, base_name = os.path.split(self.baseFilename)
        self._directory = directory
        self._stem = base_name[: -len(".log")] if base_name.endswith(".log") else base_name
        self._rotated_pattern = re.compile(rf"^{re.escape(self._stem)}-(\d{{4}}-\d{{2}}-\d{{2}})(\.\d+)?\.log$")

    def shouldRollover(self, record):
        if super().shouldRollover(record):
            return True
        if self.maxBytes <= 0:
            return False
        if self.stream is None:
            self.stream = self._open()
        message = f"{self.format(record)}\n"
        self.stream.seek(0, 2)
        return self.stream.tell() + len(message) >= self.maxBytes

    def _dated_name(self, default_name):
        date_part = default_name.rsplit(".", 1)[-1]
        candidate = os.path.join(self._directory, f"{self._stem}-{date_part}.log")
        counter = 1
        while os.path.exists(candidate):
            candidate = os.path.join(self._directory, f"{self._stem}-{date_part}.{counter}.log")
            counter += 1
        return candidate

    def getFilesToDelete(self):
        rotated = {}
        for name in os.listdir(self._directory):
            match = self._rotated_pattern.match(name)
            if match:
                rotated.setdefault(match.group(1), []).append(os.path.join(self._directory, name))
        dates = sorted(rotated)
        if len(dates) <= self.backupCount:
            return []
        expired = []
        for date in dates[: len(dates) - self.backupCount]:
            expired.extend(rotated[date])
        return expired
