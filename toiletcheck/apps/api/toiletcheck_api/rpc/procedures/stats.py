"""stats.* procedures."""

from sqlalchemy.orm import sessionmaker

from toiletcheck_api.rpc.registry import ProcedureKind, RpcContext, procedure
from toiletcheck_api.services.stats import get_admin_stats


@procedure("stats.getAdminStats", ProcedureKind.MANAGER)
async def admin_stats(ctx: RpcContext, _):
    return await get_admin_stats(sessionmaker(bind=ctx.db.get_bind()))
