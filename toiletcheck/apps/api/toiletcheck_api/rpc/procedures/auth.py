"""auth.* procedures."""

from toiletcheck_api.rpc.registry import ProcedureKind, RpcContext, procedure
from toiletcheck_api.schemas import LoginRequest, RefreshRequest, RegisterRequest
from toiletcheck_api.services import auth as auth_service
from toiletcheck_api.services.users import get_user, user_with_role


@procedure("auth.login", ProcedureKind.PUBLIC, input=LoginRequest)
def login(ctx: RpcContext, data: LoginRequest):
    return auth_service.login(ctx.db, ctx.sessions, data.email, data.password)


@procedure("auth.register", ProcedureKind.PUBLIC, input=RegisterRequest)
def register(ctx: RpcContext, data: RegisterRequest):
    return auth_service.register(
        ctx.db,
        ctx.sessions,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        phone=data.phone,
    )


@procedure("auth.me")
def me(ctx: RpcContext, _):
    return user_with_role(ctx.db, get_user(ctx.db, ctx.user.user_id))


@procedure("auth.refresh", ProcedureKind.PUBLIC, input=RefreshRequest)
def refresh(ctx: RpcContext, data: RefreshRequest):
    return auth_service.refresh(ctx.sessions, data.token)


@procedure("auth.logout")
def logout(ctx: RpcContext, _):
    return auth_service.logout(ctx.sessions, ctx.user.token)
