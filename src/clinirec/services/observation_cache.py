"""Blood pressure observation cache keyed by server id."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from clinirec.core.exceptions import DataValidationError
from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.models.observation import (
    BloodPressureObservation,
    build_observation,
    parse_observation_envelope,
)
from clinirec.models.visit import BloodPressureMeasurement
from clinirec.services.correlator import PatientRecordCorrelator
from clinirec.services.entity_cache import EntityCache
from clinirec.services.validation import validate_observation
from clinirec.transport.gateway import TransportGateway


class ObservationCache(EntityCache[str, BloodPressureObservation]):
    """Observations, parsed from the ``fhirObservationJson`` document string.

    Input to ``create``/``update`` is a mapping with ``patientNationalId``,
    optional ``practitionerNationalId`` and ``bloodPressureMeasurement``.
    """

    entity = "observation"
    collection = "/observations"
    requires_key = False

    def __init__(
        self,
        gateway: TransportGateway,
        messages: MessageCatalog | None = None,
        correlator: PatientRecordCorrelator | None = None,
    ) -> None:
        super().__init__(gateway, messages)
        self.correlator = correlator

    def parse(self, raw: Any) -> BloodPressureObservation:
        return parse_observation_envelope(raw)

    def key_of(self, record: BloodPressureObservation) -> str:
        return record.id

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return validate_observation(data, self.messages)

    def serialize(self, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            measurement = BloodPressureMeasurement.model_validate(
                data["bloodPressureMeasurement"]
            )
        except ValidationError as e:
            msg = self.messages.get(MessageKey.MEASUREMENT_INCOMPLETE)
            raise DataValidationError(msg) from e

        patient_national_id = data["patientNationalId"].strip()
        practitioner_national_id = data.get("practitionerNationalId") or None
        observation = build_observation(
            patient_national_id, measurement, practitioner_national_id
        )
        return {
            "patientNationalId": patient_national_id,
            "practitionerNationalId": practitioner_national_id,
            "fhirObservationJson": observation.to_json(),
        }

    async def create_params(
        self, data: Mapping[str, Any], key: str | None
    ) -> dict[str, Any] | None:
        """Name the patient and, when it can be resolved, their clinical record."""
        patient_national_id = data["patientNationalId"].strip()
        params: dict[str, Any] = {"patientNationalId": patient_national_id}
        if self.correlator is None:
            return params

        record_id = await self.correlator.resolve_record_id(patient_national_id)
        if record_id:
            params["ehrId"] = record_id
        else:
            self._warn(self.messages.get(MessageKey.RECORD_ID_UNRESOLVED))
        return params

    def for_patient(self, patient_national_id: str) -> list[BloodPressureObservation]:
        """Cached observations of one patient, oldest reading first."""
        readings = [
            record for record in self.records
            if record.patient_national_id == patient_national_id
        ]
        return sorted(readings, key=lambda record: record.effective or "")
