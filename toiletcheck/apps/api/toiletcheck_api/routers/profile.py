"""Own profile read and update (any authenticated user)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from toiletcheck_api.auth.session_auth import AuthContext, get_session_auth_context
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import success
from toiletcheck_api.schemas import ProfileUpdateRequest
from toiletcheck_api.services.serializers import user_to_dict
from toiletcheck_api.services.users import get_user, update_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("")
async def get_profile(
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    return success(user_to_dict(get_user(db, auth.user_id)), "Profile retrieved")


@router.put("")
async def put_profile(
    body: ProfileUpdateRequest,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    user = update_profile(
        db,
        auth.user_id,
        full_name=body.full_name,
        phone=body.phone,
        occupation_id=body.occupation_id,
    )
    return success(user_to_dict(user), "Profile updated successfully")
