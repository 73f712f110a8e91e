"""Practitioner cache keyed by national identifier."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from clinirec.core.exceptions import DataValidationError
from clinirec.core.messages import MessageKey
from clinirec.models.fhir import FhirPractitioner, parse_practitioner_envelope
from clinirec.services.entity_cache import EntityCache
from clinirec.services.patient_cache import national_id_from_document
from clinirec.services.validation import validate_person


class PractitionerCache(EntityCache[str, FhirPractitioner]):
    entity = "practitioner"
    collection = "/practitioners"

    def parse(self, raw: Any) -> FhirPractitioner:
        return parse_practitioner_envelope(raw)

    def key_of(self, record: FhirPractitioner) -> str:
        return record.record_key

    def key_from_input(self, data: Mapping[str, Any]) -> str | None:
        return national_id_from_document(data)

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return validate_person(data, self.messages)

    def serialize(self, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            practitioner = FhirPractitioner.model_validate(dict(data))
        except ValidationError as e:
            msg = self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
            raise DataValidationError(msg) from e
        return practitioner.to_wire()

    async def create_params(
        self, data: Mapping[str, Any], key: str | None
    ) -> dict[str, Any] | None:
        return {"nationalId": key}
