"""Wire schemas for the backend JSON contract.

Pydantic models validate what the backend sends and convert it to the
frozen domain models. The backend is not consistent about key casing
(``travelModes`` and ``travel_modes`` both occur), so every field accepts
both spellings. Outgoing payloads use camelCase.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..domain.models import (
    AuthSession,
    Credential,
    Identity,
    Pagination,
    TransportMode,
    TravelProfile,
)


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ===================== Envelopes =====================


class PaginationPayload(WireModel):
    limit: int = 0
    offset: int = 0
    total: int = 0

    def to_domain(self) -> Pagination:
        return Pagination(limit=self.limit, offset=self.offset, total=self.total)


class SuccessEnvelope(WireModel):
    """``{ data, message?, pagination? }``"""

    data: Any = None
    message: Optional[str] = None
    pagination: Optional[PaginationPayload] = None


class ErrorDetail(WireModel):
    message: Optional[str] = None
    field_errors: Dict[str, List[str]] = Field(
        default_factory=dict, validation_alias=AliasChoices("fields", "errors", "details")
    )

    @field_validator("field_errors", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: v if isinstance(v, list) else [str(v)] for k, v in value.items()
            }
        return {}


class ErrorEnvelope(WireModel):
    """``{ error: { message, fields? } }``; a bare string error is accepted too."""

    error: ErrorDetail

    @field_validator("error", mode="before")
    @classmethod
    def _wrap_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"message": value}
        return value


# ===================== Auth =====================


class IdentityPayload(WireModel):
    id: str
    email: str
    email_verified: bool = Field(
        default=False,
        validation_alias=AliasChoices("emailVerified", "email_verified", "is_verified"),
    )
    phone_verified: bool = Field(
        default=False, validation_alias=AliasChoices("phoneVerified", "phone_verified")
    )
    username: Optional[str] = None
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("displayName", "display_name")
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    def to_domain(self) -> Identity:
        return Identity(
            id=self.id,
            email=self.email,
            email_verified=self.email_verified,
            phone_verified=self.phone_verified,
            username=self.username,
            display_name=self.display_name,
        )

    @classmethod
    def parse(cls, data: Any) -> Identity:
        """Accept either the user object or ``{"user": {...}}``."""
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        return cls.model_validate(data).to_domain()

    @classmethod
    def dump(cls, identity: Identity) -> Dict[str, Any]:
        return {
            "id": identity.id,
            "email": identity.email,
            "emailVerified": identity.email_verified,
            "phoneVerified": identity.phone_verified,
            "username": identity.username,
            "displayName": identity.display_name,
        }


class CredentialPayload(WireModel):
    """Token block of an auth response, also the persisted credential record."""

    access_token: str = Field(
        validation_alias=AliasChoices("accessToken", "access_token", "token")
    )
    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refreshToken", "refresh_token")
    )
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expiresAt", "expires_at")
    )
    expires_in: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("expiresIn", "expires_in")
    )

    def to_domain(self, now: Optional[datetime] = None) -> Credential:
        expires_at = self.expires_at
        if expires_at is None and self.expires_in is not None:
            now = now or datetime.now(timezone.utc)
            expires_at = now + timedelta(seconds=self.expires_in)
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return Credential(
            token=self.access_token,
            expires_at=expires_at,
            refresh_token=self.refresh_token,
        )

    @classmethod
    def dump(cls, credential: Credential) -> Dict[str, Any]:
        return {
            "accessToken": credential.token,
            "refreshToken": credential.refresh_token,
            "expiresAt": (
                credential.expires_at.isoformat() if credential.expires_at else None
            ),
        }


class AuthPayload(CredentialPayload):
    """``POST /auth/verify`` response data: tokens plus the user."""

    user: IdentityPayload

    def to_session(self, now: Optional[datetime] = None) -> AuthSession:
        return AuthSession(credential=self.to_domain(now), identity=self.user.to_domain())


# ===================== Profile =====================

ExperienceLevel = Literal["beginner", "intermediate", "expert"]
SafetyPriority = Literal["high", "medium", "low"]


class ProfilePayload(WireModel):
    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id"))
    selected_modes: List[TransportMode] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "travelModes", "travel_modes", "selectedModes", "selected_modes"
        ),
    )
    primary_mode: Optional[TransportMode] = Field(
        default=None, validation_alias=AliasChoices("primaryMode", "primary_mode")
    )
    onboarding_completed: bool = Field(
        default=False,
        validation_alias=AliasChoices("onboardingCompleted", "onboarding_completed"),
    )
    experience_level: ExperienceLevel = Field(
        default="beginner",
        validation_alias=AliasChoices("experienceLevel", "experience_level"),
    )
    safety_priority: SafetyPriority = Field(
        default="high", validation_alias=AliasChoices("safetyPriority", "safety_priority")
    )
    show_all_spots: bool = Field(
        default=False, validation_alias=AliasChoices("showAllSpots", "show_all_spots")
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    updated_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )

    def to_domain(self) -> TravelProfile:
        return TravelProfile(
            user_id=self.user_id,
            selected_modes=tuple(dict.fromkeys(self.selected_modes)),
            primary_mode=self.primary_mode,
            onboarding_completed=self.onboarding_completed,
            experience_level=self.experience_level,
            safety_priority=self.safety_priority,
            show_all_spots=self.show_all_spots,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def parse(cls, data: Any) -> TravelProfile:
        """Accept either the profile object or ``{"profile": {...}}``."""
        if isinstance(data, dict) and isinstance(data.get("profile"), dict):
            data = data["profile"]
        return cls.model_validate(data).to_domain()

    @classmethod
    def dump(cls, profile: TravelProfile) -> Dict[str, Any]:
        return {
            "userId": profile.user_id,
            "travelModes": [mode.value for mode in profile.selected_modes],
            "primaryMode": profile.primary_mode.value if profile.primary_mode else None,
            "onboardingCompleted": profile.onboarding_completed,
            "experienceLevel": profile.experience_level,
            "safetyPriority": profile.safety_priority,
            "showAllSpots": profile.show_all_spots,
            "createdAt": profile.created_at.isoformat() if profile.created_at else None,
            "updatedAt": profile.updated_at.isoformat() if profile.updated_at else None,
        }


class ProfileChanges(WireModel):
    """A partial profile update as accepted by ``update_profile``.

    Unknown keys are rejected. Only the fields actually given are applied.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    selected_modes: Optional[List[TransportMode]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "selected_modes", "selectedModes", "travelModes", "travel_modes"
        ),
    )
    primary_mode: Optional[TransportMode] = Field(
        default=None, validation_alias=AliasChoices("primary_mode", "primaryMode")
    )
    onboarding_completed: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("onboarding_completed", "onboardingCompleted"),
    )
    experience_level: Optional[ExperienceLevel] = Field(
        default=None,
        validation_alias=AliasChoices("experience_level", "experienceLevel"),
    )
    safety_priority: Optional[SafetyPriority] = Field(
        default=None, validation_alias=AliasChoices("safety_priority", "safetyPriority")
    )
    show_all_spots: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("show_all_spots", "showAllSpots")
    )

    def given(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller, by attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}
