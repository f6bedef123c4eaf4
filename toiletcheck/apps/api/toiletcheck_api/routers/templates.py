"""Inspection templates: one by id, or the default (created on first use)."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from toiletcheck_api.auth.session_auth import AuthContext, get_session_auth_context
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import success
from toiletcheck_api.services import templates as template_service

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("")
async def get_template(
    id: Optional[str] = None,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    if id:
        return success(template_service.get_template(db, id), "Template retrieved")

    template, created = template_service.get_or_create_default_template(db, auth.user_id)
    message = "Default template created" if created else "Default template retrieved"
    return success(template, message)
