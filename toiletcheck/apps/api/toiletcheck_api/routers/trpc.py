"""RPC endpoint: /api/trpc/{router}.{procedure}.

Queries arrive as GET with the input JSON-encoded in ?input=, mutations as
POST with the input as the JSON body. Every procedure can be called either
way.

Success: {"result": {"data": ...}}
Failure: {"error": {"message", "code", "data": {"code", "httpStatus", "path"}}}
"""

import json as _json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import toiletcheck_api.rpc.procedures  # noqa: F401
from toiletcheck_api.auth.session_auth import (
    get_session_service,
    resolve_auth_context,
    session_security,
)
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.cache import CacheService, get_cache_service
from toiletcheck_api.db.session import get_db
from toiletcheck_api.errors import BadRequestError, ServiceError
from toiletcheck_api.rpc.registry import RpcContext, call_procedure

router = APIRouter(prefix="/api/trpc", tags=["rpc"])
logger = logging.getLogger(__name__)


def get_rpc_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    sessions: SessionService = Depends(get_session_service),
) -> RpcContext:
    """Build the context; an invalid or missing token leaves it anonymous."""
    auth = None
    if credentials is not None:
        try:
            auth = resolve_auth_context(credentials.credentials, db, sessions)
        except HTTPException:
            auth = None
    return RpcContext(db=db, cache=cache, sessions=sessions, auth=auth)


def rpc_error(path: str, code: str, status: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "error": {
                "message": message,
                "code": code,
                "data": {"code": code, "httpStatus": status, "path": path},
            }
        },
    )


def _decode(raw: Any) -> Any:
    if raw is None or raw in ("", b""):
        return None
    try:
        return _json.loads(raw)
    except ValueError:
        raise BadRequestError("Input is not valid JSON")


async def _dispatch(ctx: RpcContext, path: str, raw_input: Any) -> JSONResponse:
    try:
        data = await call_procedure(ctx, path, _decode(raw_input))
    except ServiceError as e:
        if e.status_code >= 500:
            logger.error(
                "rpc.procedure.failed",
                extra={"event": "rpc.procedure.failed", "path": path, "code": e.code},
            )
        return rpc_error(path, e.code, e.status_code, e.message)
    except Exception:
        ctx.db.rollback()
        logger.error(
            "rpc.procedure.crashed",
            extra={"event": "rpc.procedure.crashed", "path": path},
            exc_info=True,
        )
        return rpc_error(path, "INTERNAL_SERVER_ERROR", 500, "An unexpected error occurred")
    return JSONResponse(content={"result": {"data": data}})


@router.get("/{path}")
async def rpc_query(
    path: str,
    raw_input: Optional[str] = Query(None, alias="input"),
    ctx: RpcContext = Depends(get_rpc_context),
):
    return await _dispatch(ctx, path, raw_input)


@router.post("/{path}")
async def rpc_mutation(
    path: str,
    request: Request,
    ctx: RpcContext = Depends(get_rpc_context),
):
    return await _dispatch(ctx, path, await request.body())
