"""Blood pressure observations.

The records service keeps each observation as a FHIR ``Observation``
document string inside an envelope that also names the patient, the
practitioner and, once stored in the clinical record, the openEHR
composition it was written to.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from clinirec.core.exceptions import DocumentParseError
from clinirec.models.fhir import CodeableConcept, Coding, FhirElement
from clinirec.models.visit import BloodPressureMeasurement

LOINC_SYSTEM = "http://loinc.org"
LOINC_BLOOD_PRESSURE_PANEL = "85354-9"
LOINC_SYSTOLIC = "8480-6"
LOINC_DIASTOLIC = "8462-4"
UCUM_SYSTEM = "http://unitsofmeasure.org"
DEFAULT_PRESSURE_UNIT = "mm[Hg]"


class Quantity(FhirElement):
    value: float | None = None
    unit: str | None = None
    system: str | None = None
    code: str | None = None


class Reference(FhirElement):
    reference: str | None = None
    display: str | None = None


class ObservationComponent(FhirElement):
    code: CodeableConcept
    value_quantity: Quantity | None = Field(default=None, alias="valueQuantity")

    def has_code(self, code: str) -> bool:
        return any(coding.code == code for coding in self.code.coding)


class FhirObservation(FhirElement):
    resource_type: Literal["Observation"] = Field(
        default="Observation", alias="resourceType"
    )
    id: str | None = None
    status: str = "final"
    code: CodeableConcept | None = None
    subject: Reference | None = None
    performer: list[Reference] = Field(default_factory=list)
    effective_date_time: str | None = Field(default=None, alias="effectiveDateTime")
    body_site: CodeableConcept | None = Field(default=None, alias="bodySite")
    component: list[ObservationComponent] = Field(default_factory=list)

    def component_value(self, code: str) -> Quantity | None:
        for component in self.component:
            if component.has_code(code):
                return component.value_quantity
        return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ObservationEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int | str | None = None
    patient_national_id: str | None = Field(default=None, alias="patientNationalId")
    practitioner_national_id: str | None = Field(
        default=None, alias="practitionerNationalId"
    )
    composition_id: str | None = Field(default=None, alias="compositionId")
    ehr_id: str | None = Field(default=None, alias="ehrId")
    document: str | None = Field(default=None, alias="fhirObservationJson")


class BloodPressureObservation(BaseModel):
    """A parsed observation as held in the observation cache."""

    model_config = ConfigDict(frozen=True)

    id: str
    patient_national_id: str
    practitioner_national_id: str | None = None
    effective: str | None = None
    measurement: BloodPressureMeasurement
    composition_id: str | None = None
    ehr_id: str | None = None
    observation: FhirObservation


def _component(
    code: str, display: str, magnitude: float | None, unit: str | None
) -> ObservationComponent:
    return ObservationComponent(
        code=CodeableConcept(
            coding=[Coding(system=LOINC_SYSTEM, code=code, display=display)]
        ),
        value_quantity=Quantity(
            value=magnitude,
            unit=unit or DEFAULT_PRESSURE_UNIT,
            system=UCUM_SYSTEM,
            code=unit or DEFAULT_PRESSURE_UNIT,
        ),
    )


def build_observation(
    patient_national_id: str,
    measurement: BloodPressureMeasurement,
    practitioner_national_id: str | None = None,
) -> FhirObservation:
    """Build the FHIR document for a blood pressure reading."""
    performer = []
    if practitioner_national_id or measurement.measured_by:
        performer.append(
            Reference(
                reference=(
                    f"Practitioner/{practitioner_national_id}"
                    if practitioner_national_id
                    else None
                ),
                display=measurement.measured_by,
            )
        )
    body_site = CodeableConcept(text=measurement.location) if measurement.location else None
    return FhirObservation(
        code=CodeableConcept(
            coding=[
                Coding(
                    system=LOINC_SYSTEM,
                    code=LOINC_BLOOD_PRESSURE_PANEL,
                    display="Blood pressure panel",
                )
            ]
        ),
        subject=Reference(reference=f"Patient/{patient_national_id}"),
        performer=performer,
        effective_date_time=measurement.date,
        body_site=body_site,
        component=[
            _component(
                LOINC_SYSTOLIC,
                "Systolic blood pressure",
                measurement.systolic_magnitude,
                measurement.systolic_unit,
            ),
            _component(
                LOINC_DIASTOLIC,
                "Diastolic blood pressure",
                measurement.diastolic_magnitude,
                measurement.diastolic_unit,
            ),
        ],
    )


def measurement_from_observation(observation: FhirObservation) -> BloodPressureMeasurement:
    systolic = observation.component_value(LOINC_SYSTOLIC) or Quantity()
    diastolic = observation.component_value(LOINC_DIASTOLIC) or Quantity()
    return BloodPressureMeasurement(
        date=observation.effective_date_time,
        systolic_magnitude=systolic.value,
        systolic_unit=systolic.unit,
        diastolic_magnitude=diastolic.value,
        diastolic_unit=diastolic.unit,
        location=observation.body_site.text if observation.body_site else None,
        measured_by=observation.performer[0].display if observation.performer else None,
    )


def parse_observation_envelope(raw: Any) -> BloodPressureObservation:
    """Parse one observation envelope.

    Raises:
        DocumentParseError: The envelope or its document is unusable
    """
    if not isinstance(raw, dict):
        raise DocumentParseError(
            "observation", f"expected an object, got {type(raw).__name__}"
        )
    try:
        envelope = ObservationEnvelope.model_validate(raw)
    except ValidationError as e:
        raise DocumentParseError("observation", str(e), record_id=raw.get("id")) from e

    record_id = envelope.id
    if record_id is None or not str(record_id).strip():
        raise DocumentParseError("observation", "envelope has no id")
    patient_national_id = (envelope.patient_national_id or "").strip()
    if not patient_national_id:
        raise DocumentParseError(
            "observation", "envelope has no patient national identifier", record_id=record_id
        )
    if not envelope.document:
        raise DocumentParseError("observation", "envelope has no document", record_id=record_id)

    try:
        observation = FhirObservation.model_validate_json(envelope.document)
    except ValidationError as e:
        raise DocumentParseError("observation", str(e), record_id=record_id) from e

    measurement = measurement_from_observation(observation)
    if not measurement.is_complete:
        raise DocumentParseError(
            "observation",
            "document lacks systolic or diastolic components",
            record_id=record_id,
        )

    return BloodPressureObservation(
        id=str(record_id),
        patient_national_id=patient_national_id,
        practitioner_national_id=envelope.practitioner_national_id,
        effective=observation.effective_date_time,
        measurement=measurement,
        composition_id=envelope.composition_id,
        ehr_id=envelope.ehr_id,
        observation=observation,
    )
