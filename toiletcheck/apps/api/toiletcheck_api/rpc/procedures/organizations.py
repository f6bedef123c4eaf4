"""organization.* procedures."""

import re
from typing import Optional

from pydantic import BaseModel, Field

from toiletcheck_api.rpc.registry import IdInput, PageInput, ProcedureKind, RpcContext, procedure
from toiletcheck_api.services import facilities


class CreatorFilter(BaseModel):
    creatorId: Optional[str] = None


class OrganizationCreateInput(BaseModel):
    name: str = Field(..., min_length=2)
    shortCode: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    type: Optional[str] = None


class OrganizationUpdateInput(BaseModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2)
    shortCode: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    type: Optional[str] = None


def default_short_code(name: str) -> str:
    """First four alphanumerics of the name, uppercased."""
    return re.sub(r"[^A-Za-z0-9]", "", name)[:4].upper() or "ORG"


@procedure("organization.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return facilities.get_organization(ctx.db, ctx.cache, data.id)


@procedure("organization.listByCreator", input=CreatorFilter)
def list_by_creator(ctx: RpcContext, data: CreatorFilter):
    return facilities.list_organizations(ctx.db, created_by=data.creatorId or ctx.user.user_id)


@procedure("organization.create", input=OrganizationCreateInput)
def create(ctx: RpcContext, data: OrganizationCreateInput):
    return facilities.create_organization(
        ctx.db,
        name=data.name,
        short_code=data.shortCode or default_short_code(data.name),
        created_by=ctx.user.user_id,
        **data.model_dump(exclude_none=True, include={"address", "phone", "email", "type"}),
    )


@procedure("organization.update", ProcedureKind.ADMIN, input=OrganizationUpdateInput)
def update(ctx: RpcContext, data: OrganizationUpdateInput):
    changes = data.model_dump(exclude_unset=True, exclude={"id", "shortCode"})
    if data.shortCode:
        changes["short_code"] = data.shortCode.upper()
    return facilities.update_organization(ctx.db, ctx.cache, data.id, changes)


@procedure("organization.delete", ProcedureKind.ADMIN, input=IdInput)
def delete(ctx: RpcContext, data: IdInput):
    facilities.deactivate_organization(ctx.db, ctx.cache, data.id)
    return {"success": True}


@procedure("organization.list", ProcedureKind.ADMIN, input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return facilities.list_organizations(ctx.db, limit=data.limit, offset=data.offset)
