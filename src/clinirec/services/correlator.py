"""Cross-entity correlation between visits, observations and patients.

Reading a stored blood pressure composition needs the patient's
clinical-record (EHR) id, which only the patient envelope carries. The
correlator looks it up and, when it cannot, reports a warning instead of
failing the dependent operation: a visit stays usable without its
measurement detail.
"""

import logging

from pydantic import ValidationError

from clinirec.core.exceptions import TransportError
from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.models.visit import BloodPressureMeasurement
from clinirec.services.patient_cache import PatientCache
from clinirec.transport.gateway import TransportGateway

logger = logging.getLogger(__name__)

MEASUREMENT_PATH = "/observations/blood-pressure/{composition_id}"


class PatientRecordCorrelator:
    """Resolves patient clinical-record ids for dependent reads."""

    def __init__(
        self,
        gateway: TransportGateway,
        patients: PatientCache,
        messages: MessageCatalog | None = None,
    ) -> None:
        self.gateway = gateway
        self.patients = patients
        self.messages = messages or patients.messages

    async def resolve_record_id(
        self, patient_national_id: str | None, hint: str | None = None
    ) -> str | None:
        """Return the patient's clinical-record id, or None when unknown.

        Order: the ``hint`` from the dependent envelope, the cached patient,
        then a fetch through the patient cache.
        """
        if hint and hint.strip():
            return hint.strip()
        if not patient_national_id or not patient_national_id.strip():
            return None

        national_id = patient_national_id.strip()
        record_id = self.patients.record_id_for(national_id)
        if record_id:
            return record_id

        record = await self.patients.get_by_key(national_id)
        return record.ehr_id if record else None

    async def fetch_measurement(
        self,
        patient_national_id: str | None,
        composition_id: str,
        hint: str | None = None,
    ) -> tuple[BloodPressureMeasurement | None, str | None]:
        """Read the flat blood pressure composition of a visit.

        Returns:
            ``(measurement, None)`` on success, ``(None, warning)`` when the
            read was skipped or failed. Never raises.
        """
        record_id = await self.resolve_record_id(patient_national_id, hint)
        if not record_id:
            logger.warning(
                "Skipping composition %s: no clinical record id for patient",
                composition_id,
            )
            return None, self.messages.get(MessageKey.RECORD_ID_UNRESOLVED)

        try:
            flat = await self.gateway.get(
                MEASUREMENT_PATH.format(composition_id=composition_id),
                params={"ehrId": record_id},
            )
        except TransportError as e:
            logger.warning("Could not read composition %s: %s", composition_id, e)
            return None, self.messages.get(MessageKey.MEASUREMENT_UNAVAILABLE)

        if not isinstance(flat, dict):
            logger.warning("Composition %s is not a flat object", composition_id)
            return None, self.messages.get(MessageKey.MEASUREMENT_UNAVAILABLE)

        try:
            measurement = BloodPressureMeasurement.from_flat(flat)
        except ValidationError:
            logger.warning("Composition %s has malformed values", composition_id)
            return None, self.messages.get(MessageKey.MEASUREMENT_UNAVAILABLE)

        if not measurement.is_complete:
            logger.warning("Composition %s lacks a complete reading", composition_id)
            return None, self.messages.get(MessageKey.MEASUREMENT_UNAVAILABLE)
        return measurement, None
