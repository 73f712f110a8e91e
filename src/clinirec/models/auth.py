"""Authentication models.

Roles arrive in several shapes (``"ROLE_ADMIN"``, ``{"name": "ROLE_ADMIN"}``,
missing, or unknown). ``UserRole.normalize`` is the single place those
shapes are folded into the enum; nothing past the session or cache boundary
ever sees the raw form.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(StrEnum):
    """User roles for navigation access control."""

    ADMIN = "ROLE_ADMIN"
    PRACTITIONER = "ROLE_PRACTITIONER"
    UNASSIGNED = ""

    @classmethod
    def normalize(cls, raw: Any) -> "UserRole":
        """Fold any wire representation of a role into a ``UserRole``."""
        if isinstance(raw, UserRole):
            return raw
        if isinstance(raw, dict):
            raw = raw.get("name")
        if not isinstance(raw, str):
            return cls.UNASSIGNED
        value = raw.strip().upper()
        if value and not value.startswith("ROLE_"):
            value = f"ROLE_{value}"
        try:
            return cls(value)
        except ValueError:
            return cls.UNASSIGNED


class LoginRequest(BaseModel):
    """Credentials sent to ``POST /auth/login``."""

    email: str
    password: str = Field(repr=False)


class AuthResponse(BaseModel):
    """Body returned by ``POST /auth/login``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: str | None = None
    role: UserRole = UserRole.UNASSIGNED
    user_id: str | None = Field(default=None, alias="userId")

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> UserRole:
        return UserRole.normalize(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user_id(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the session consumed by the navigation guard."""

    is_logged_in: bool
    role: UserRole
    user_id: str | None = None

    @classmethod
    def anonymous(cls) -> "SessionSnapshot":
        return cls(is_logged_in=False, role=UserRole.UNASSIGNED)
