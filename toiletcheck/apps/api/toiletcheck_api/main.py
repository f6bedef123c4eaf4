"""ToiletCheck API - FastAPI Application Entry Point."""

import logging
import os
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from toiletcheck_api import __version__
from toiletcheck_api.context import organization_id_var, request_id_var, user_id_var
from toiletcheck_api.errors import ServiceError
from toiletcheck_api.responses import error_body
from toiletcheck_api.routers import (
    admin,
    auth,
    health,
    inspections,
    locations,
    profile,
    reports,
    templates,
    trpc,
    webhooks,
)
from toiletcheck_api.utils.logging import configure_json_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="ToiletCheck API",
    description="Facility inspection tracking: QR-scanned restroom checks, reports and billing.",
    version=__version__,
    docs_url="/api-docs",
    redoc_url="/redoc",
)

# Set TC_JSON_LOGS=false to keep the default plain-text logging
if os.getenv("TC_JSON_LOGS", "true").lower() != "false":
    configure_json_logging(log_level=os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Structured JSON logging enabled")

# Credentialed CORS cannot use a wildcard origin
cors_origins_env = os.getenv("CORS_ALLOWED_ORIGINS", "")
if cors_origins_env:
    allowed_origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
else:
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Retry-After"],
)


# ============================================================================
# Request logging and request id
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Emit one "http.request.completed" record per request, 500 on unhandled errors.

    Per-request identity contextvars are cleared before and after so they
    never leak into the next request served by the same task.
    """
    user_id_var.set("")
    organization_id_var.set("")

    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_id_var.set("")
        organization_id_var.set("")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Echo X-Request-ID from the client or generate a UUID4.

    Registered last so it is the outermost middleware and the contextvar is
    set before any inner middleware runs.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Global exception handlers (error envelope)
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    headers = {}
    if exc.headers and "WWW-Authenticate" in exc.headers:
        headers["WWW-Authenticate"] = exc.headers["WWW-Authenticate"]
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures are 400 with the first offending field."""
    first_error = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []) if loc != "body")
    msg = first_error.get("msg", "Validation error")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(f"Invalid field '{field}': {msg}" if field else msg),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"Service error: {exc.message}",
            extra={"event": "service.error", "code": exc.code, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is a generic 500; the real exception is only logged."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(inspections.router)
app.include_router(locations.router)
app.include_router(templates.router)
app.include_router(reports.router)
app.include_router(admin.router)
app.include_router(webhooks.router)
app.include_router(trpc.router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"name": "ToiletCheck API", "version": __version__, "docs": "/api-docs"}
