"""location.* procedures."""

import time
from typing import Optional

from pydantic import BaseModel, Field

from toiletcheck_api.rpc.registry import IdInput, PageInput, ProcedureKind, RpcContext, procedure
from toiletcheck_api.services import facilities


class QRCodeInput(BaseModel):
    qrCode: str = Field(..., min_length=1)


class BuildingFilter(BaseModel):
    buildingId: str = Field(..., min_length=1)


class LocationCreateInput(BaseModel):
    name: str = Field(..., min_length=2)
    buildingId: str = Field(..., min_length=1)
    qrCode: Optional[str] = None
    code: Optional[str] = None
    floor: Optional[str] = None
    section: Optional[str] = None
    area: Optional[str] = None
    description: Optional[str] = None


class LocationUpdateInput(BaseModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2)
    floor: Optional[str] = None
    qrCode: Optional[str] = Field(None, min_length=1)


@procedure("location.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return facilities.get_location(ctx.db, ctx.cache, data.id)


@procedure("location.getByQRCode", input=QRCodeInput)
def get_by_qr_code(ctx: RpcContext, data: QRCodeInput):
    return facilities.get_location_by_qr(ctx.db, ctx.cache, data.qrCode)


@procedure("location.listByBuilding", input=BuildingFilter)
def list_by_building(ctx: RpcContext, data: BuildingFilter):
    return facilities.list_locations_by_building(ctx.db, ctx.cache, data.buildingId)


@procedure("location.create", ProcedureKind.MANAGER, input=LocationCreateInput)
def create(ctx: RpcContext, data: LocationCreateInput):
    fields = data.model_dump(exclude_none=True, include={"floor", "section", "area", "description"})
    return facilities.create_location(
        ctx.db,
        ctx.cache,
        name=data.name,
        building_id=data.buildingId,
        created_by=ctx.user.user_id,
        qr_code=data.qrCode,
        organization_id=ctx.user.organization_id,
        code=data.code or f"LOC-{int(time.time() * 1000)}",
        **fields,
    )


@procedure("location.update", ProcedureKind.MANAGER, input=LocationUpdateInput)
def update(ctx: RpcContext, data: LocationUpdateInput):
    changes = data.model_dump(exclude_unset=True, exclude={"id", "qrCode"})
    if data.qrCode:
        changes["qr_code"] = data.qrCode
    return facilities.update_location(ctx.db, ctx.cache, data.id, changes)


@procedure("location.delete", ProcedureKind.MANAGER, input=IdInput)
def delete(ctx: RpcContext, data: IdInput):
    facilities.deactivate_location(ctx.db, ctx.cache, data.id)
    return {"success": True}


@procedure("location.list", input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return facilities.list_locations(ctx.db, limit=data.limit, offset=data.offset)
