"""Location lookups by id or QR code (any authenticated user)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from toiletcheck_api.auth.session_auth import AuthContext, get_session_auth_context
from toiletcheck_api.db.cache import CacheService, get_cache_service
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import success
from toiletcheck_api.services import facilities

router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("/by-qr/{qr_code}")
async def get_location_by_qr(
    qr_code: str,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    return success(facilities.get_location_by_qr(db, cache, qr_code), "Location retrieved")


@router.get("/{location_id}")
async def get_location(
    location_id: str,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    return success(facilities.get_location(db, cache, location_id), "Location retrieved")
