"""Pydantic schemas for API requests/responses."""

from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, StrictBool, field_validator, model_validator

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


# ============================================================================
# Response envelopes
# ============================================================================


class ErrorEnvelope(BaseModel):
    """Uniform error body for every /api endpoint."""

    success: Literal[False] = False
    error: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="ISO 8601 UTC time of the failure")
    instance: Optional[str] = Field(
        None, description="Opaque occurrence id (urn:toiletcheck:trace:<request_id>)"
    )


# ============================================================================
# /api/auth
# ============================================================================


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(..., description="User email address", pattern=EMAIL_PATTERN)
    password: str = Field(..., description="User password", min_length=6)


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    email: str = Field(..., description="User email address", pattern=EMAIL_PATTERN)
    password: str = Field(..., description="User password (minimum 6 characters)", min_length=6)
    full_name: str = Field(..., description="Display name (minimum 2 characters)")
    phone: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def _full_name_min_length(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("full_name must be at least 2 characters")
        return value


class RefreshRequest(BaseModel):
    """Request body for POST /api/auth/refresh."""

    token: str = Field(..., min_length=1)


# ============================================================================
# /api/profile
# ============================================================================


class ProfileUpdateRequest(BaseModel):
    """Request body for PUT /api/profile.

    full_name length is checked by the handler so the error reads as a
    400 with a profile-specific message.
    """

    full_name: Optional[str] = None
    phone: Optional[str] = None
    occupation_id: Optional[str] = None


# ============================================================================
# /api/inspections
# ============================================================================


class InspectionCreateRequest(BaseModel):
    """Request body for POST /api/inspections."""

    location_id: str = Field(..., min_length=1)
    inspection_date: date
    responses: Any = Field(..., description="Free-form checklist answers, stored as submitted")
    template_id: Optional[str] = None
    inspection_time: Optional[str] = None
    overall_status: str = "satisfactory"
    photo_urls: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None

    @field_validator("responses")
    @classmethod
    def _responses_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("responses is required")
        return value


class InspectionUpdateRequest(BaseModel):
    """Request body for PATCH /api/inspections/{id}. Only these fields are mutable."""

    responses: Optional[Any] = None
    photo_urls: Optional[list[str]] = None
    notes: Optional[str] = None
    overall_status: Optional[str] = None


# ============================================================================
# /api/admin
# ============================================================================


class AssignRoleRequest(BaseModel):
    """Request body for POST /api/admin/users/assign-role. The role is given by id or name."""

    userId: str = Field(..., min_length=1)
    roleId: Optional[str] = None
    roleName: Optional[str] = None

    @model_validator(mode="after")
    def _role_given(self) -> "AssignRoleRequest":
        if not self.roleId and not self.roleName:
            raise ValueError("roleId or roleName is required")
        return self


class ToggleStatusRequest(BaseModel):
    """Request body for POST /api/admin/users/toggle-status."""

    userId: str = Field(..., min_length=1)
    isActive: StrictBool


# ============================================================================
# /health
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]
