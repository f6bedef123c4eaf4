"""template.* procedures."""

from toiletcheck_api.rpc.registry import IdInput, PageInput, RpcContext, procedure
from toiletcheck_api.services import templates


@procedure("template.getDefault")
def get_default(ctx: RpcContext, _):
    return templates.get_default_template_cached(ctx.db, ctx.cache, ctx.user.user_id)


@procedure("template.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return templates.get_template(ctx.db, data.id)


@procedure("template.list", input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return templates.list_templates(ctx.db, limit=data.limit, offset=data.offset)
