"""inspection.* procedures."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from toiletcheck_api.auth.roles import RoleLevel, has_level
from toiletcheck_api.rpc.registry import IdInput, PageInput, RpcContext, procedure
from toiletcheck_api.schemas import InspectionCreateRequest, InspectionUpdateRequest
from toiletcheck_api.services import inspections
from toiletcheck_api.services.serializers import inspection_to_dict


class LocationFilter(BaseModel):
    locationId: str = Field(..., min_length=1)
    limit: int = Field(50, ge=1, le=1000)


class InspectorFilter(BaseModel):
    inspectorId: Optional[str] = None
    limit: int = Field(50, ge=1, le=1000)


class DateRangeInput(BaseModel):
    startDate: date
    endDate: date


class InspectionPatchInput(InspectionUpdateRequest):
    id: str = Field(..., min_length=1)


def _dicts(records) -> list[dict]:
    return [inspection_to_dict(r) for r in records]


def _can_modify_any(ctx: RpcContext) -> bool:
    return has_level(ctx.user.role_level, RoleLevel.ADMIN)


@procedure("inspection.getById", input=IdInput)
def get_by_id(ctx: RpcContext, data: IdInput):
    return inspection_to_dict(inspections.get_inspection(ctx.db, data.id))


@procedure("inspection.listByLocation", input=LocationFilter)
def list_by_location(ctx: RpcContext, data: LocationFilter):
    return _dicts(inspections.list_inspections(ctx.db, location_id=data.locationId, limit=data.limit))


@procedure("inspection.listByInspector", input=InspectorFilter)
def list_by_inspector(ctx: RpcContext, data: InspectorFilter):
    user_id = data.inspectorId or ctx.user.user_id
    return _dicts(inspections.list_inspections(ctx.db, user_id=user_id, limit=data.limit))


@procedure("inspection.listByDateRange", input=DateRangeInput)
def list_by_date_range(ctx: RpcContext, data: DateRangeInput):
    return _dicts(
        inspections.list_inspections(ctx.db, start_date=data.startDate, end_date=data.endDate)
    )


@procedure("inspection.create", input=InspectionCreateRequest)
def create(ctx: RpcContext, data: InspectionCreateRequest):
    return inspection_to_dict(inspections.create_inspection(ctx.db, ctx.user.user_id, data))


@procedure("inspection.update", input=InspectionPatchInput)
def update(ctx: RpcContext, data: InspectionPatchInput):
    changes = InspectionUpdateRequest.model_validate(
        data.model_dump(exclude_unset=True, exclude={"id"})
    )
    record = inspections.update_inspection(
        ctx.db,
        data.id,
        changes,
        actor_id=ctx.user.user_id,
        allow_any=_can_modify_any(ctx),
    )
    return inspection_to_dict(record)


@procedure("inspection.delete", input=IdInput)
def delete(ctx: RpcContext, data: IdInput):
    record = inspections.get_inspection(ctx.db, data.id)
    inspections.ensure_can_modify(record, ctx.user.user_id, _can_modify_any(ctx))
    inspections.delete_inspection(ctx.db, record)
    return {"success": True}


@procedure("inspection.list", input=PageInput)
def list_all(ctx: RpcContext, data: PageInput):
    return _dicts(inspections.list_inspections(ctx.db, limit=data.limit, offset=data.offset))
