"""Visit cache keyed by visit uuid.

Visits carry only the id of their blood pressure composition. When a single
visit is created or fetched, the measurement itself is read through the
correlator; failures there become warnings, never errors.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from clinirec.core.decorators import cache_operation
from clinirec.core.exceptions import DataValidationError, DocumentParseError
from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.models.fhir import PLACEHOLDER_NATIONAL_ID
from clinirec.models.visit import Visit, VisitRequest
from clinirec.services.correlator import PatientRecordCorrelator
from clinirec.services.entity_cache import EntityCache
from clinirec.services.validation import validate_visit
from clinirec.transport.gateway import TransportGateway


class VisitCache(EntityCache[str, Visit]):
    entity = "visit"
    collection = "/visits"
    requires_key = False

    def __init__(
        self,
        gateway: TransportGateway,
        messages: MessageCatalog | None = None,
        correlator: PatientRecordCorrelator | None = None,
    ) -> None:
        super().__init__(gateway, messages)
        self.correlator = correlator

    def parse(self, raw: Any) -> Visit:
        if not isinstance(raw, dict):
            raise DocumentParseError(
                self.entity, f"expected an object, got {type(raw).__name__}"
            )
        try:
            return Visit.model_validate(raw)
        except ValidationError as e:
            raise DocumentParseError(self.entity, str(e), record_id=raw.get("visitUuid")) from e

    def key_of(self, record: Visit) -> str:
        return record.uuid

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return validate_visit(data, self.messages)

    def serialize(self, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return VisitRequest.model_validate(dict(data)).to_wire()
        except ValidationError as e:
            msg = self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
            raise DataValidationError(msg) from e

    async def hydrate(self, record: Visit) -> Visit:
        """Attach the blood pressure measurement referenced by the visit."""
        if (
            self.correlator is None
            or record.blood_pressure_measurement is not None
            or not record.blood_pressure_composition_id
        ):
            return record

        measurement, warning = await self.correlator.fetch_measurement(
            record.patient_national_id,
            record.blood_pressure_composition_id,
            hint=record.ehr_id,
        )
        if warning:
            self._warn(warning)
            return record
        return record.model_copy(update={"blood_pressure_measurement": measurement})

    @cache_operation()
    async def load_for_patient(self, patient_national_id: str) -> list[Visit] | None:
        """Replace the cache with the visits of one patient."""
        national_id = (patient_national_id or "").strip()
        if not national_id or national_id == PLACEHOLDER_NATIONAL_ID:
            self.last_error = self.messages.get(MessageKey.PATIENT_KEY_REQUIRED)
            return None
        return await self._load_collection(f"{self.collection}/patient/{national_id}")
