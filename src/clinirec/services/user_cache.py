"""User account cache for the administrator configuration area."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from clinirec.core.exceptions import DataValidationError, DocumentParseError
from clinirec.core.messages import MessageKey
from clinirec.models.user import User
from clinirec.services.entity_cache import EntityCache
from clinirec.services.validation import validate_user


class UserCache(EntityCache[int, User]):
    entity = "user"
    collection = "/users"
    requires_key = False

    def parse(self, raw: Any) -> User:
        if not isinstance(raw, dict):
            raise DocumentParseError(
                self.entity, f"expected an object, got {type(raw).__name__}"
            )
        try:
            user = User.model_validate(raw)
        except ValidationError as e:
            raise DocumentParseError(self.entity, str(e), record_id=raw.get("userId")) from e
        if user.user_id is None:
            raise DocumentParseError(self.entity, "user has no userId")
        return user

    def key_of(self, record: User) -> int:
        return record.user_id  # type: ignore[return-value]

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return validate_user(data, self.messages, creating=creating)

    def serialize(self, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return User.model_validate(dict(data)).to_wire()
        except ValidationError as e:
            msg = self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
            raise DataValidationError(msg) from e

    @property
    def medic_users(self) -> list[User]:
        """Cached users holding the practitioner role."""
        return [user for user in self.records if user.is_practitioner]
