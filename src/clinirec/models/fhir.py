"""FHIR R4 shaped clinical documents and their server envelopes.

The records service stores each patient and practitioner as a serialized
FHIR resource (a JSON *string*) inside an envelope that also carries flat
lookup fields. ``parse_*_envelope`` turns one envelope into a parsed
document and enforces the wrapper rules:

- the envelope must carry a usable national identifier
- a document without identifiers gets one backfilled from the envelope
- a document whose identifiers disagree with the envelope is rejected
- a document without ``id`` inherits the server-assigned FHIR id
"""

from enum import StrEnum
from html import escape
from typing import Any, Literal, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
)

from clinirec.core.exceptions import DocumentParseError

NATIONAL_ID_SYSTEM = "national"
PLACEHOLDER_NATIONAL_ID = "N/A"


class AdministrativeGender(StrEnum):
    """FHIR administrative gender."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class FhirElement(BaseModel):
    """Base for FHIR structures: camelCase on the wire, unknown fields kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Identifier(FhirElement):
    system: str = ""
    value: str = ""
    use: str | None = None


class HumanName(FhirElement):
    use: str | None = None
    family: str = ""
    given: list[str] = Field(default_factory=list)

    @property
    def display(self) -> str:
        return " ".join([*self.given, self.family]).strip()


class Coding(FhirElement):
    system: str = ""
    code: str = ""
    display: str | None = None


class CodeableConcept(FhirElement):
    coding: list[Coding] = Field(default_factory=list)
    text: str | None = None


class Qualification(FhirElement):
    code: CodeableConcept


class ContactPoint(FhirElement):
    system: str | None = None
    value: str = ""
    use: str | None = None


class Address(FhirElement):
    line: list[str] | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = Field(default=None, alias="postalCode")
    country: str | None = None


class Meta(FhirElement):
    profile: list[str] | None = None


class Narrative(FhirElement):
    status: str = "generated"
    div: str = ""


class ClinicalDocument(FhirElement):
    """Fields shared by the person-shaped resources (Patient, Practitioner)."""

    resource_type: str = Field(alias="resourceType")
    id: str | None = None
    meta: Meta | None = None
    identifier: list[Identifier] = Field(default_factory=list)
    name: list[HumanName] = Field(default_factory=list)
    gender: AdministrativeGender | None = None
    birth_date: str | None = Field(default=None, alias="birthDate")

    @property
    def national_id(self) -> str | None:
        """The record's business key.

        The ``national`` identifier wins; otherwise the first identifier
        carrying a value.
        """
        for ident in self.identifier:
            if ident.value and ident.system == NATIONAL_ID_SYSTEM:
                return ident.value
        for ident in self.identifier:
            if ident.value:
                return ident.value
        return None

    @property
    def display_name(self) -> str:
        return self.name[0].display if self.name else ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class FhirPatient(ClinicalDocument):
    resource_type: Literal["Patient"] = Field(default="Patient", alias="resourceType")
    text: Narrative | None = None


class FhirPractitioner(ClinicalDocument):
    resource_type: Literal["Practitioner"] = Field(
        default="Practitioner", alias="resourceType"
    )
    qualification: list[Qualification] = Field(default_factory=list)
    telecom: list[ContactPoint] = Field(default_factory=list)
    address: list[Address] = Field(default_factory=list)

    _envelope_national_id: str | None = PrivateAttr(default=None)

    @property
    def record_key(self) -> str:
        """Business key of the envelope this document was read from.

        Falls back to ``national_id`` for documents not read from an envelope.
        """
        return self._envelope_national_id or self.national_id or ""


# ==============================================================================
# Envelopes
# ==============================================================================


class DocumentEnvelope(BaseModel):
    """Server envelope: flat lookup fields plus the document string."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int | str | None = None
    national_id: str | None = Field(default=None, alias="nationalId")
    fhir_id: str | None = Field(default=None, alias="fhirId")


class PatientEnvelope(DocumentEnvelope):
    ehr_id: str | None = Field(default=None, alias="ehrId")
    document: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fhirPatient", "resourcePatientJson", "fhirPatientJson"),
        serialization_alias="fhirPatient",
    )


class PractitionerEnvelope(DocumentEnvelope):
    document: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fhirPractitionerJson", "resourcePractitionerJson"),
        serialization_alias="fhirPractitionerJson",
    )


class PatientRecord(BaseModel):
    """A parsed patient document plus the envelope's bookkeeping fields."""

    model_config = ConfigDict(frozen=True)

    national_id: str
    patient: FhirPatient
    record_id: int | str | None = None
    fhir_id: str | None = None
    ehr_id: str | None = None


# ==============================================================================
# Parsing
# ==============================================================================

E = TypeVar("E", bound=DocumentEnvelope)
D = TypeVar("D", bound=ClinicalDocument)


def _load_envelope(envelope_cls: type[E], raw: Any, entity: str) -> E:
    if not isinstance(raw, dict):
        raise DocumentParseError(entity, f"expected an object, got {type(raw).__name__}")
    try:
        return envelope_cls.model_validate(raw)
    except ValidationError as e:
        raise DocumentParseError(entity, str(e), record_id=raw.get("id")) from e


def _load_document(
    document_cls: type[D], envelope: DocumentEnvelope, document: str | None, entity: str
) -> D:
    national_id = (envelope.national_id or "").strip()
    if not national_id or national_id == PLACEHOLDER_NATIONAL_ID:
        raise DocumentParseError(
            entity, "envelope has no national identifier", record_id=envelope.id
        )
    if not document:
        raise DocumentParseError(entity, "envelope has no document", record_id=envelope.id)

    try:
        parsed = document_cls.model_validate_json(document)
    except ValidationError as e:
        raise DocumentParseError(entity, str(e), record_id=envelope.id) from e

    if not any(ident.value for ident in parsed.identifier):
        parsed.identifier = [Identifier(system=NATIONAL_ID_SYSTEM, value=national_id)]
    elif not any(ident.value == national_id for ident in parsed.identifier):
        raise DocumentParseError(
            entity,
            "document identifiers do not match the envelope national identifier",
            record_id=envelope.id,
        )

    if not parsed.id and envelope.fhir_id:
        parsed.id = envelope.fhir_id
    return parsed


def parse_patient_envelope(raw: Any) -> PatientRecord:
    """Parse one patient envelope into a ``PatientRecord``.

    Raises:
        DocumentParseError: The envelope or its document is unusable
    """
    envelope = _load_envelope(PatientEnvelope, raw, "patient")
    patient = _load_document(FhirPatient, envelope, envelope.document, "patient")
    return PatientRecord(
        national_id=envelope.national_id.strip(),
        patient=patient,
        record_id=envelope.id,
        fhir_id=envelope.fhir_id,
        ehr_id=envelope.ehr_id,
    )


def parse_practitioner_envelope(raw: Any) -> FhirPractitioner:
    """Parse one practitioner envelope into a ``FhirPractitioner``.

    Raises:
        DocumentParseError: The envelope or its document is unusable
    """
    envelope = _load_envelope(PractitionerEnvelope, raw, "practitioner")
    practitioner = _load_document(
        FhirPractitioner, envelope, envelope.document, "practitioner"
    )
    practitioner._envelope_national_id = envelope.national_id.strip()
    return practitioner


def build_patient_narrative(patient: FhirPatient) -> Narrative:
    """Generate the human readable XHTML summary stored with a patient."""
    name = patient.name[0] if patient.name else HumanName()
    given = " ".join(name.given) or "Unnamed"
    identifier = patient.national_id or PLACEHOLDER_NATIONAL_ID
    gender = patient.gender.value if patient.gender else AdministrativeGender.UNKNOWN.value
    birth_date = patient.birth_date or "Not available"
    div = (
        '<div xmlns="http://www.w3.org/1999/xhtml">'
        f"<p>Name: {escape(given)} {escape(name.family)}</p>"
        f"<p>Identifier: {escape(identifier)}</p>"
        f"<p>Gender: {escape(gender)}</p>"
        f"<p>Birth date: {escape(birth_date)}</p>"
        "</div>"
    )
    return Narrative(status="generated", div=div)
