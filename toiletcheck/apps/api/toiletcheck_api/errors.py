"""Domain errors raised by services.

Each error carries both an RPC code and an HTTP status so the same service
call can be surfaced by the REST layer (global exception handler in main.py)
and by the RPC layer (routers/trpc.py).
"""


class ServiceError(Exception):
    """Base class for expected, caller-facing failures."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(ServiceError):
    code = "BAD_REQUEST"
    status_code = 400


class UnauthorizedError(ServiceError):
    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(ServiceError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ServiceError):
    code = "CONFLICT"
    status_code = 409


class InternalServiceError(ServiceError):
    pass
