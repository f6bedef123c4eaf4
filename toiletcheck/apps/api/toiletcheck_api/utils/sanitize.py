"""Redaction for anything that reaches a log line.

Strings are handled by size: very long ones are replaced with a length and
digest, mid-sized ones only get a credential prefix check, and short ones
go through the full pattern set. Dict keys naming credentials or customer
PII (Midtrans customer_details, inspector email/phone) are blanked outright.
"""

import hashlib
import re
import traceback
from typing import Any

MAX_STR_LOG = 2048
MAX_STR_FOR_REGEX = 512
MAX_DEPTH = 6

REDACTED = "[REDACTED]"

_SENSITIVE_KEYS = frozenset({
    "authorization", "token", "access_token", "refresh_token", "password",
    "secret", "jwt_secret", "server_key", "client_key", "signature_key",
    "email", "phone", "customer_details",
})

_CREDENTIAL_PREFIXES = ("Bearer ", "Basic ")

_SECRET_RE = re.compile(
    r"(?:Bearer|Basic) \S+"
    r"|(?:password|signature_key)=\S+"
    r"|(?:SB-)?Mid-(?:server|client)-\S+"
    r"|eyJ[\w-]+\.[\w-]+\.[\w-]+"
)


def payload_hash_bytes(raw: bytes) -> str:
    """sha256 hex of a raw request body, for correlating rejected webhooks."""
    return hashlib.sha256(raw).hexdigest()


def sanitize_str(s: str) -> str:
    if not isinstance(s, str):
        return s  # type: ignore[return-value]
    if len(s) > MAX_STR_LOG:
        digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
        return f"[TRUNCATED len={len(s)} sha256={digest}]"
    if len(s) > MAX_STR_FOR_REGEX:
        return REDACTED if s.startswith(_CREDENTIAL_PREFIXES) else s
    return _SECRET_RE.sub(REDACTED, s)


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively redact a log ``extra`` value; nesting past MAX_DEPTH is cut."""
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"
    if isinstance(obj, str):
        return sanitize_str(obj)
    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [sanitize_obj(item, depth + 1) for item in obj]
    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Traceback text without frame locals, passed through sanitize_str."""
    value = exc_info[1]
    if value is None:
        return ""
    try:
        formatted = traceback.TracebackException.from_exception(value, capture_locals=False).format()
        return sanitize_str("".join(formatted))
    except Exception:
        return "[TRACEBACK_FORMAT_ERROR]"
