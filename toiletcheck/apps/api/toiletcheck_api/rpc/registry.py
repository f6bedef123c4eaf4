"""Procedure registry for the RPC endpoint.

A procedure is addressed as "<router>.<procedure>" and has a kind that
decides who may call it:

    public     anyone
    protected  a live session                  (else UNAUTHORIZED)
    manager    protected and level >= ADMIN    (else FORBIDDEN)
    admin      protected and level >= SUPER_ADMIN (else FORBIDDEN)

Handlers take (ctx, input) where input is the validated pydantic model, or
None for procedures without one. Handlers may be sync or async.
"""

import enum
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from toiletcheck_api.auth.roles import RoleLevel, has_level
from toiletcheck_api.auth.session_auth import AuthContext
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.cache import CacheService
from toiletcheck_api.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError


class ProcedureKind(str, enum.Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    MANAGER = "manager"
    ADMIN = "admin"


@dataclass
class RpcContext:
    db: Session
    cache: CacheService
    sessions: SessionService
    auth: Optional[AuthContext] = None

    @property
    def user(self) -> AuthContext:
        """Caller of a non-public procedure (authorize() has already run)."""
        if self.auth is None:
            raise UnauthorizedError("Authentication required")
        return self.auth


@dataclass(frozen=True)
class Procedure:
    path: str
    kind: ProcedureKind
    handler: Callable[..., Any]
    input_model: Optional[type[BaseModel]] = None


PROCEDURES: dict[str, Procedure] = {}


class IdInput(BaseModel):
    id: str = Field(..., min_length=1)


class PageInput(BaseModel):
    limit: int = Field(100, ge=1, le=1000)
    offset: int = Field(0, ge=0)


def procedure(
    path: str,
    kind: ProcedureKind = ProcedureKind.PROTECTED,
    input: Optional[type[BaseModel]] = None,
):
    """Register the decorated handler under `path`."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        if path in PROCEDURES:
            raise ValueError(f"Procedure already registered: {path}")
        PROCEDURES[path] = Procedure(path=path, kind=kind, handler=fn, input_model=input)
        return fn

    return decorator


def authorize(kind: ProcedureKind, auth: Optional[AuthContext]) -> None:
    if kind is ProcedureKind.PUBLIC:
        return
    if auth is None:
        raise UnauthorizedError("Authentication required")
    if kind is ProcedureKind.MANAGER and not has_level(auth.role_level, RoleLevel.ADMIN):
        raise ForbiddenError("Manager access required")
    if kind is ProcedureKind.ADMIN and not has_level(auth.role_level, RoleLevel.SUPER_ADMIN):
        raise ForbiddenError("Admin access required")


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first.get("loc", ()))
    msg = first.get("msg", "Invalid input")
    return f"Invalid input '{field}': {msg}" if field else f"Invalid input: {msg}"


def parse_input(proc: Procedure, raw: Any) -> Optional[BaseModel]:
    if proc.input_model is None:
        return None
    try:
        return proc.input_model.model_validate(raw if raw is not None else {})
    except ValidationError as e:
        raise BadRequestError(_validation_message(e))


async def call_procedure(ctx: RpcContext, path: str, raw_input: Any) -> Any:
    """Resolve, authorize, validate and run one procedure.

    Raises:
        ServiceError: every expected failure (mapped to an RPC error code)
    """
    proc = PROCEDURES.get(path)
    if proc is None:
        raise NotFoundError(f'No procedure found on path "{path}"')

    authorize(proc.kind, ctx.auth)
    data = parse_input(proc, raw_input)

    result = proc.handler(ctx, data)
    if inspect.isawaitable(result):
        result = await result
    return result
