"""One-line JSON log records.

Every record carries timestamp, level, message and call site, plus the
request_id / user_id / organization_id of the request being served.
Anything passed through ``extra=`` (``event`` in particular) is copied in
after redaction.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from toiletcheck_api.context import organization_id_var, request_id_var, user_id_var
from toiletcheck_api.utils.sanitize import sanitize_exc, sanitize_obj, sanitize_str

# Attributes every LogRecord has; whatever else is on the record came from extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}

_CONTEXT_VARS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "organization_id": organization_id_var,
}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": sanitize_str(record.getMessage()),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }
        entry.update({name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()})

        if record.exc_info:
            entry["exc_info"] = sanitize_exc(record.exc_info)

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and key not in entry:
                entry[key] = sanitize_obj(value)

        return json.dumps(entry, default=str)


def configure_json_logging(log_level: str = "INFO") -> None:
    """Replace the root handlers with a single JSON stream handler."""
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
