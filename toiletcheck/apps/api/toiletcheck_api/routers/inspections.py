"""Inspection CRUD for the calling user.

Every lookup is filtered by the caller's user id, so another user's record
reads as 404. Updates distinguish the two (404 missing, 403 not yours).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from toiletcheck_api.auth.session_auth import AuthContext, get_session_auth_context
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import success
from toiletcheck_api.schemas import InspectionCreateRequest, InspectionUpdateRequest
from toiletcheck_api.services import inspections as inspection_service
from toiletcheck_api.services.serializers import inspection_to_dict

router = APIRouter(prefix="/api/inspections", tags=["inspections"])


@router.get("")
async def list_own_inspections(
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    records = inspection_service.list_inspections(db, user_id=auth.user_id)
    return success([inspection_to_dict(r) for r in records], "Inspections retrieved")


@router.get("/{inspection_id}")
async def get_own_inspection(
    inspection_id: str,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    record = inspection_service.get_own_inspection(db, auth.user_id, inspection_id)
    return success(inspection_to_dict(record), "Inspection retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_inspection(
    body: InspectionCreateRequest,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    record = inspection_service.create_inspection(db, auth.user_id, body)
    return success(inspection_to_dict(record, include_relations=False), "Inspection created")


@router.patch("/{inspection_id}")
async def update_inspection(
    inspection_id: str,
    body: InspectionUpdateRequest,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    record = inspection_service.update_inspection(db, inspection_id, body, actor_id=auth.user_id)
    return success(inspection_to_dict(record, include_relations=False), "Inspection updated")


@router.delete("/{inspection_id}")
async def delete_inspection(
    inspection_id: str,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    record = inspection_service.get_own_inspection(db, auth.user_id, inspection_id)
    inspection_service.delete_inspection(db, record)
    return success({"id": inspection_id}, "Inspection deleted")
