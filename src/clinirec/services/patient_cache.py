"""Patient cache keyed by national identifier."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from clinirec.core.exceptions import DataValidationError
from clinirec.core.messages import MessageKey
from clinirec.models.fhir import (
    NATIONAL_ID_SYSTEM,
    FhirPatient,
    PatientRecord,
    build_patient_narrative,
    parse_patient_envelope,
)
from clinirec.services.entity_cache import EntityCache
from clinirec.services.validation import validate_person


def national_id_from_document(data: Mapping[str, Any]) -> str | None:
    """Return the national identifier of a wire-shaped person document."""
    identifiers = data.get("identifier")
    if not isinstance(identifiers, list):
        return None
    values = [
        ident
        for ident in identifiers
        if isinstance(ident, Mapping)
        and isinstance(ident.get("value"), str)
        and ident["value"].strip()
    ]
    for ident in values:
        if ident.get("system") == NATIONAL_ID_SYSTEM:
            return ident["value"].strip()
    return values[0]["value"].strip() if values else None


class PatientCache(EntityCache[str, PatientRecord]):
    """Patients, parsed from the ``fhirPatient`` document string."""

    entity = "patient"
    collection = "/patients"

    def parse(self, raw: Any) -> PatientRecord:
        return parse_patient_envelope(raw)

    def key_of(self, record: PatientRecord) -> str:
        return record.national_id

    def key_from_input(self, data: Mapping[str, Any]) -> str | None:
        return national_id_from_document(data)

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return validate_person(data, self.messages)

    def serialize(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Build the Patient document and attach its generated narrative."""
        try:
            patient = FhirPatient.model_validate(dict(data))
        except ValidationError as e:
            msg = self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
            raise DataValidationError(msg) from e
        patient.text = build_patient_narrative(patient)
        return patient.to_wire()

    async def create_params(
        self, data: Mapping[str, Any], key: str | None
    ) -> dict[str, Any] | None:
        return {"nationalId": key}

    def record_id_for(self, national_id: str) -> str | None:
        """Return the cached clinical-record id of a patient, if known."""
        record = self.peek(national_id)
        return record.ehr_id if record else None
