"""Inspection templates."""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.db.cache import CacheService
from toiletcheck_api.db.models import InspectionTemplate
from toiletcheck_api.errors import NotFoundError
from toiletcheck_api.services.serializers import template_to_dict

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_CACHE_KEY = "template:default"

DEFAULT_TEMPLATE_NAME = "Comprehensive Inspection"
DEFAULT_TEMPLATE_FIELDS = {
    "components": [],
    "requiredPhotos": 0,
    "maxPhotos": 10,
    "allowNotes": True,
}


def get_template(db: Session, template_id: str) -> dict[str, Any]:
    template = db.execute(
        select(InspectionTemplate).where(
            InspectionTemplate.id == template_id, InspectionTemplate.is_active.is_(True)
        )
    ).scalar_one_or_none()
    if template is None:
        raise NotFoundError("Template not found or inactive")
    return template_to_dict(template)


def get_or_create_default_template(
    db: Session, created_by: Optional[str] = None
) -> tuple[dict[str, Any], bool]:
    """Return (template, created). Creates the built-in default when none exists."""
    template = db.execute(
        select(InspectionTemplate)
        .where(InspectionTemplate.is_default.is_(True), InspectionTemplate.is_active.is_(True))
        .order_by(InspectionTemplate.created_at)
        .limit(1)
    ).scalar_one_or_none()
    if template is not None:
        return template_to_dict(template), False

    logger.warning(
        "No default template found, creating one",
        extra={"event": "template.default.created"},
    )
    template = InspectionTemplate(
        name=DEFAULT_TEMPLATE_NAME,
        description="Default comprehensive inspection template",
        fields=dict(DEFAULT_TEMPLATE_FIELDS),
        estimated_time=300,
        is_active=True,
        is_default=True,
        created_by=created_by,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template_to_dict(template), True


def get_default_template_cached(
    db: Session, cache: CacheService, created_by: Optional[str] = None
) -> dict[str, Any]:
    cached = cache.get(DEFAULT_TEMPLATE_CACHE_KEY)
    if cached is not None:
        return cached
    template, _ = get_or_create_default_template(db, created_by)
    cache.set(DEFAULT_TEMPLATE_CACHE_KEY, template)
    return template


def list_templates(db: Session, *, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    stmt = (
        select(InspectionTemplate)
        .where(InspectionTemplate.is_active.is_(True))
        .order_by(InspectionTemplate.name)
        .offset(offset)
        .limit(limit)
    )
    return [template_to_dict(t) for t in db.execute(stmt).scalars()]
