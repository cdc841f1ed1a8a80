from collections import deque
from datetime import datetime, timezone as dt_timezone
from pathlib import Path

from django.conf import settings

from apps.common.exceptions import NotFoundError, ValidationError

LOG_FILE_SUFFIX = ".log"


def log_directory():
    return Path(settings.LOG_DIR)


def list_log_files():
    directory = log_directory()
    if not directory.is_dir():
        return []
    files = []
    for path in directory.glob(f"*{LOG_FILE_SUFFIX}"):
        if not path.is_file():
            continue
        stat = path.stat()
        files.append(
            {
                "name": path.name,
                "size": stat.st_size,
                "created": datetime.fromtimestamp(stat.st_ctime, tz=dt_timezone.utc),
                "modified": datetime.fromtimestamp(stat.st_mtime, tz=dt_timezone.utc),
            }
        )
    files.sort(key=lambda item: item["modified"], reverse=True)
    return files


def _resolve(name):
    if not name or ".." in name or "/" in name or "\\" in name or not name.endswith(LOG_FILE_SUFFIX):
        raise ValidationError("Ungültiger Dateiname.")
    path = log_directory() / name
    if not path.is_file():
        raise NotFoundError("Logdatei nicht gefunden.")
    return path


def read_log_file(name, lines=None):
    """Return the last ``lines`` lines of a log file in ``LOG_DIR``."""
    path = _resolve(name)
    lines = lines or settings.LOG_FILE_DEFAULT_LINES
    with path.open(encoding="utf-8", errors="replace") as handle:
        tail = deque(handle, maxlen=lines)
    return {
        "name": name,
        "lines": [line.rstrip("\n") for line in tail],
        "count": len(tail),
    }
