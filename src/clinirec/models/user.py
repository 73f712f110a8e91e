"""User account models for the administrator configuration area."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinirec.models.auth import UserRole


class User(BaseModel):
    """Application user account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: int | None = Field(default=None, alias="userId")
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: str = ""
    password: str | None = Field(default=None, repr=False)
    roles: list[UserRole] = Field(default_factory=list)

    @field_validator("roles", mode="before")
    @classmethod
    def _normalize_roles(cls, value: Any) -> list[UserRole]:
        if value is None:
            return []
        if not isinstance(value, list):
            value = [value]
        return [UserRole.normalize(role) for role in value]

    @property
    def is_practitioner(self) -> bool:
        return UserRole.PRACTITIONER in self.roles

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_wire(self) -> dict[str, Any]:
        body = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        body["roles"] = [role.value for role in self.roles if role is not UserRole.UNASSIGNED]
        return body
