"""Visit and blood pressure measurement models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# openEHR FLAT paths of the blood pressure template
FLAT_PREFIX = "blood_pressure/blood_pressure"
FLAT_SYSTOLIC_MAGNITUDE = f"{FLAT_PREFIX}/any_event:0/systolic|magnitude"
FLAT_SYSTOLIC_UNIT = f"{FLAT_PREFIX}/any_event:0/systolic|unit"
FLAT_DIASTOLIC_MAGNITUDE = f"{FLAT_PREFIX}/any_event:0/diastolic|magnitude"
FLAT_DIASTOLIC_UNIT = f"{FLAT_PREFIX}/any_event:0/diastolic|unit"
FLAT_EVENT_TIME = f"{FLAT_PREFIX}/any_event:0/time"
FLAT_LOCATION = f"{FLAT_PREFIX}/location_of_measurement|value"
FLAT_COMPOSER = "blood_pressure/composer|name"
FLAT_START_TIME = "blood_pressure/context/start_time"


class BloodPressureMeasurement(BaseModel):
    """A single systolic/diastolic reading."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: str | None = None
    systolic_magnitude: float | None = Field(default=None, alias="systolicMagnitude")
    systolic_unit: str | None = Field(default=None, alias="systolicUnit")
    diastolic_magnitude: float | None = Field(default=None, alias="diastolicMagnitude")
    diastolic_unit: str | None = Field(default=None, alias="diastolicUnit")
    location: str | None = None
    measured_by: str | None = Field(default=None, alias="measuredBy")

    @property
    def is_complete(self) -> bool:
        """Both systolic and diastolic carry a magnitude and a unit."""
        return (
            self.systolic_magnitude is not None
            and bool(self.systolic_unit)
            and self.diastolic_magnitude is not None
            and bool(self.diastolic_unit)
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_flat(cls, flat: dict[str, Any]) -> "BloodPressureMeasurement":
        """Decode a FLAT composition returned by the measurement endpoint."""
        return cls(
            date=flat.get(FLAT_EVENT_TIME) or flat.get(FLAT_START_TIME),
            systolic_magnitude=flat.get(FLAT_SYSTOLIC_MAGNITUDE),
            systolic_unit=flat.get(FLAT_SYSTOLIC_UNIT),
            diastolic_magnitude=flat.get(FLAT_DIASTOLIC_MAGNITUDE),
            diastolic_unit=flat.get(FLAT_DIASTOLIC_UNIT),
            location=flat.get(FLAT_LOCATION),
            measured_by=flat.get(FLAT_COMPOSER),
        )


class VisitRequest(BaseModel):
    """Body of ``POST /visits`` and ``PUT /visits/{uuid}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    patient_national_id: str = Field(default="", alias="patientNationalId")
    practitioner_national_id: str = Field(default="", alias="practitionerNationalId")
    visit_date: str | None = Field(default=None, alias="visitDate")
    blood_pressure_measurement: BloodPressureMeasurement | None = Field(
        default=None, alias="bloodPressureMeasurement"
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Visit(BaseModel):
    """A visit as held in the visit cache."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uuid: str = Field(alias="visitUuid")
    patient_national_id: str = Field(alias="patientNationalId")
    practitioner_national_id: str = Field(alias="practitionerNationalId")
    practitioner_name: str | None = Field(default=None, alias="practitionerName")
    date: datetime | None = Field(default=None, alias="visitDate")
    blood_pressure_composition_id: str | None = Field(
        default=None, alias="bloodPressureCompositionId"
    )
    ehr_id: str | None = Field(default=None, alias="ehrId")
    blood_pressure_measurement: BloodPressureMeasurement | None = Field(
        default=None, alias="bloodPressureMeasurement"
    )

    @field_validator("uuid", "patient_national_id", "practitioner_national_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            msg = "must not be blank"
            raise ValueError(msg)
        return value.strip()
