"""clinirec - Domain models.

Wire envelopes, parsed clinical documents and session types. Parsing of the
embedded document strings lives next to the models it produces.
"""

from clinirec.models.auth import AuthResponse, LoginRequest, SessionSnapshot, UserRole
from clinirec.models.fhir import (
    AdministrativeGender,
    FhirPatient,
    FhirPractitioner,
    HumanName,
    Identifier,
    PatientRecord,
    parse_patient_envelope,
    parse_practitioner_envelope,
)
from clinirec.models.observation import (
    BloodPressureObservation,
    FhirObservation,
    parse_observation_envelope,
)
from clinirec.models.user import User
from clinirec.models.visit import BloodPressureMeasurement, Visit, VisitRequest

__all__ = [
    "AdministrativeGender",
    "AuthResponse",
    "BloodPressureMeasurement",
    "BloodPressureObservation",
    "FhirObservation",
    "FhirPatient",
    "FhirPractitioner",
    "HumanName",
    "Identifier",
    "LoginRequest",
    "PatientRecord",
    "SessionSnapshot",
    "User",
    "UserRole",
    "Visit",
    "VisitRequest",
    "parse_observation_envelope",
    "parse_patient_envelope",
    "parse_practitioner_envelope",
]
