"""Single-line JSON log records."""

import json
import logging
from datetime import UTC, datetime

from tinytune.constants import ServiceName

# Passed through ``extra=`` by the token lifecycle code; copied verbatim when present.
CONTEXT_FIELDS = ("request_id", "account_id")


class JSONLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Example::

        {"timestamp": "...", "level": "WARNING", "service": "api",
         "logger": "tinytune.auth.refresher", "message": "...",
         "request_id": "...", "account_id": "alice"}
    """

    def __init__(self, service: str = ServiceName.API) -> None:
        super().__init__()
        self._service = str(service)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
