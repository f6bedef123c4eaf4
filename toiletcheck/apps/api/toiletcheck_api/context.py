"""Request context management for observability.

Context variables for request tracking across async boundaries. The JSON log
formatter picks these up automatically, so every log line emitted while a
request is being served carries the caller identity.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Authenticated user for the current request
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Organization of the authenticated user
organization_id_var: ContextVar[str] = ContextVar("organization_id", default="")
