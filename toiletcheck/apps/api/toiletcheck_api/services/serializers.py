"""Row -> JSON-ready dict conversion shared by the REST and RPC layers."""

from datetime import date, datetime
from typing import Any, Optional, Union

from toiletcheck_api.db.models import (
    AuditLog,
    Building,
    InspectionRecord,
    InspectionTemplate,
    Location,
    Organization,
    Payment,
    Plan,
    Role,
    Subscription,
    User,
)


def iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def organization_to_dict(org: Organization) -> dict[str, Any]:
    return {
        "id": org.id,
        "name": org.name,
        "short_code": org.short_code,
        "address": org.address,
        "phone": org.phone,
        "email": org.email,
        "logo_url": org.logo_url,
        "type": org.type,
        "is_active": org.is_active,
        "created_by": org.created_by,
        "current_plan_id": org.current_plan_id,
        "subscription_id": org.subscription_id,
        "created_at": iso(org.created_at),
        "updated_at": iso(org.updated_at),
    }


def building_to_dict(building: Building) -> dict[str, Any]:
    return {
        "id": building.id,
        "organization_id": building.organization_id,
        "name": building.name,
        "short_code": building.short_code,
        "address": building.address,
        "total_floors": building.total_floors,
        "type": building.type,
        "is_active": building.is_active,
        "created_by": building.created_by,
        "created_at": iso(building.created_at),
        "updated_at": iso(building.updated_at),
    }


def location_to_dict(location: Location) -> dict[str, Any]:
    """Location with the building name flattened in."""
    return {
        "id": location.id,
        "organization_id": location.organization_id,
        "building_id": location.building_id,
        "building_name": location.building.name if location.building else None,
        "name": location.name,
        "code": location.code,
        "qr_code": location.qr_code,
        "floor": location.floor,
        "section": location.section,
        "area": location.area,
        "description": location.description,
        "coordinates": location.coordinates,
        "photo_url": location.photo_url,
        "type": location.type,
        "is_active": location.is_active,
        "created_by": location.created_by,
        "created_at": iso(location.created_at),
        "updated_at": iso(location.updated_at),
    }


def template_to_dict(template: InspectionTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "fields": template.fields,
        "estimated_time": template.estimated_time,
        "is_default": template.is_default,
        "is_active": template.is_active,
        "created_by": template.created_by,
        "created_at": iso(template.created_at),
        "updated_at": iso(template.updated_at),
    }


def inspection_to_dict(record: InspectionRecord, include_relations: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": record.id,
        "user_id": record.user_id,
        "location_id": record.location_id,
        "organization_id": record.organization_id,
        "template_id": record.template_id,
        "inspection_date": iso(record.inspection_date),
        "inspection_time": record.inspection_time,
        "overall_status": record.overall_status,
        "responses": record.responses,
        "photo_urls": record.photo_urls or [],
        "notes": record.notes,
        "duration_seconds": record.duration_seconds,
        "submitted_at": iso(record.submitted_at),
        "verified_by": record.verified_by,
        "verified_at": iso(record.verified_at),
        "verification_notes": record.verification_notes,
        "created_at": iso(record.created_at),
        "updated_at": iso(record.updated_at),
    }
    if include_relations:
        location = record.location
        data["location"] = (
            {
                "id": location.id,
                "name": location.name,
                "floor": location.floor,
                "building_name": location.building.name if location.building else None,
            }
            if location
            else None
        )
        user = record.user
        data["user"] = (
            {"id": user.id, "full_name": user.full_name, "email": user.email} if user else None
        )
    return data


def user_to_dict(user: User, role: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    data = {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "occupation_id": user.occupation_id,
        "organization_id": user.organization_id,
        "profile_photo_url": user.profile_photo_url,
        "is_active": user.is_active,
        "last_login_at": iso(user.last_login_at),
        "created_at": iso(user.created_at),
        "updated_at": iso(user.updated_at),
    }
    if role is not None:
        data["role"] = role
    return data


def role_to_dict(role: Role) -> dict[str, Any]:
    return {
        "id": role.id,
        "name": role.name,
        "display_name": role.display_name,
        "description": role.description,
        "level": role.level,
        "is_active": role.is_active,
    }


def audit_log_to_dict(entry: AuditLog) -> dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "action": entry.action,
        "resource_type": entry.resource_type,
        "resource_id": entry.resource_id,
        "details": entry.details,
        "success": entry.success,
        "error_message": entry.error_message,
        "created_at": iso(entry.created_at),
    }


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "name": plan.name,
        "description": plan.description,
        "price_monthly": plan.price_monthly,
        "price_yearly": plan.price_yearly,
        "max_locations": plan.max_locations,
        "max_users": plan.max_users,
        "max_inspections_per_month": plan.max_inspections_per_month,
        "features": plan.features,
        "is_active": plan.is_active,
        "sort_order": plan.sort_order,
    }


def subscription_to_dict(subscription: Subscription) -> dict[str, Any]:
    return {
        "id": subscription.id,
        "organization_id": subscription.organization_id,
        "plan_id": subscription.plan_id,
        "status": subscription.status,
        "billing_cycle": subscription.billing_cycle,
        "current_period_start": iso(subscription.current_period_start),
        "current_period_end": iso(subscription.current_period_end),
        "cancel_at_period_end": subscription.cancel_at_period_end,
        "plan": plan_to_dict(subscription.plan) if subscription.plan else None,
        "created_at": iso(subscription.created_at),
        "updated_at": iso(subscription.updated_at),
    }


def payment_to_dict(payment: Payment) -> dict[str, Any]:
    subscription = payment.subscription
    plan_name = subscription.plan.name if subscription and subscription.plan else None
    return {
        "id": payment.id,
        "subscription_id": payment.subscription_id,
        "organization_id": payment.organization_id,
        "order_id": payment.order_id,
        "amount": payment.amount,
        "status": payment.status,
        "transaction_id": payment.transaction_id,
        "payment_type": payment.payment_type,
        "transaction_time": payment.transaction_time,
        "settlement_time": payment.settlement_time,
        "plan_name": plan_name,
        "created_at": iso(payment.created_at),
    }
