"""user.* procedures."""

from typing import Optional

from pydantic import BaseModel, Field

from toiletcheck_api.rpc.registry import IdInput, PageInput, ProcedureKind, RpcContext, procedure
from toiletcheck_api.services import users
from toiletcheck_api.services.serializers import user_to_dict


class OrganizationFilter(BaseModel):
    organizationId: Optional[str] = None


class UserUpdateInput(BaseModel):
    id: str = Field(..., min_length=1)
    fullName: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = None
    organizationId: Optional[str] = None
    occupationId: Optional[str] = None


_COLUMNS = {
    "fullName": "full_name",
    "phone": "phone",
    "organizationId": "organization_id",
    "occupationId": "occupation_id",
}


@procedure("user.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return user_to_dict(users.get_user(ctx.db, data.id))


@procedure("user.listByOrganization", input=OrganizationFilter)
def list_by_organization(ctx: RpcContext, data: OrganizationFilter):
    return users.list_users_by_organization(
        ctx.db, data.organizationId or ctx.user.organization_id
    )


@procedure("user.update", ProcedureKind.ADMIN, input=UserUpdateInput)
def update(ctx: RpcContext, data: UserUpdateInput):
    sent = data.model_dump(exclude_unset=True, exclude={"id"})
    changes = {_COLUMNS[field]: value for field, value in sent.items()}
    return users.update_user(ctx.db, data.id, changes)


@procedure("user.delete", ProcedureKind.ADMIN, input=IdInput)
def delete(ctx: RpcContext, data: IdInput):
    users.deactivate_user(ctx.db, ctx.sessions, data.id)
    return {"success": True}


@procedure("user.list", ProcedureKind.ADMIN, input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return users.list_users_with_roles(ctx.db, limit=data.limit, offset=data.offset)
