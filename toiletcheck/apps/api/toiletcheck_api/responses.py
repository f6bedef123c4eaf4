"""Response envelopes shared by the REST routers and the global exception handlers.

Success: {"success": true, "data": ..., "message"?: ..., "timestamp": ...}
Error:   {"success": false, "error": ..., "timestamp": ..., "instance": ...}
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from toiletcheck_api.context import request_id_var
from toiletcheck_api.schemas import ErrorEnvelope


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def trace_instance() -> str:
    """Opaque occurrence id derived from the request id."""
    request_id = request_id_var.get() or str(uuid.uuid4())
    return f"urn:toiletcheck:trace:{request_id}"


def success(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    body["timestamp"] = utc_timestamp()
    return body


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    envelope = ErrorEnvelope(error=message, timestamp=utc_timestamp(), instance=trace_instance())
    body = envelope.model_dump()
    body.update(extra)
    return body
