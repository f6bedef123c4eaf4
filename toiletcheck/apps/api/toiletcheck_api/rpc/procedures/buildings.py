"""building.* procedures."""

from typing import Optional

from pydantic import BaseModel, Field

from toiletcheck_api.errors import BadRequestError
from toiletcheck_api.rpc.registry import IdInput, PageInput, ProcedureKind, RpcContext, procedure
from toiletcheck_api.services import facilities


class OrganizationFilter(BaseModel):
    organizationId: Optional[str] = None


class BuildingCreateInput(BaseModel):
    name: str = Field(..., min_length=2)
    address: Optional[str] = None
    organizationId: Optional[str] = None
    shortCode: Optional[str] = None
    totalFloors: Optional[int] = Field(None, ge=0)
    type: Optional[str] = None


class BuildingUpdateInput(BaseModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2)
    address: Optional[str] = None
    totalFloors: Optional[int] = Field(None, ge=0)
    type: Optional[str] = None


@procedure("building.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return facilities.get_building(ctx.db, ctx.cache, data.id)


@procedure("building.listByOrganization", input=OrganizationFilter)
def list_by_organization(ctx: RpcContext, data: OrganizationFilter):
    organization_id = data.organizationId or ctx.user.organization_id
    if not organization_id:
        return []
    return facilities.list_buildings_by_organization(ctx.db, ctx.cache, organization_id)


@procedure("building.create", ProcedureKind.MANAGER, input=BuildingCreateInput)
def create(ctx: RpcContext, data: BuildingCreateInput):
    organization_id = data.organizationId or ctx.user.organization_id
    if not organization_id:
        raise BadRequestError("organizationId is required")
    extra = {}
    if data.address is not None:
        extra["address"] = data.address
    if data.totalFloors is not None:
        extra["total_floors"] = data.totalFloors
    if data.type is not None:
        extra["type"] = data.type
    return facilities.create_building(
        ctx.db,
        ctx.cache,
        name=data.name,
        organization_id=organization_id,
        created_by=ctx.user.user_id,
        short_code=data.shortCode,
        **extra,
    )


@procedure("building.update", ProcedureKind.MANAGER, input=BuildingUpdateInput)
def update(ctx: RpcContext, data: BuildingUpdateInput):
    sent = data.model_dump(exclude_unset=True, exclude={"id"})
    if "totalFloors" in sent:
        sent["total_floors"] = sent.pop("totalFloors")
    return facilities.update_building(ctx.db, ctx.cache, data.id, sent)


@procedure("building.delete", ProcedureKind.MANAGER, input=IdInput)
def delete(ctx: RpcContext, data: IdInput):
    facilities.deactivate_building(ctx.db, ctx.cache, data.id)
    return {"success": True}


@procedure("building.list", input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return facilities.list_buildings(ctx.db, limit=data.limit, offset=data.offset)
