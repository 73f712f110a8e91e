"""Structural validation run before any mutating request is sent.

Validators take the wire-shaped mapping the caller wants to send and return
a list of operator-facing messages; an empty list means the data may go
out. Validation never raises.
"""

from collections.abc import Mapping
from datetime import date
import re
from typing import Any

from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.models.fhir import AdministrativeGender

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_GENDERS = frozenset(gender.value for gender in AdministrativeGender)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _has_identifier(identifiers: Any) -> bool:
    if not isinstance(identifiers, list):
        return False
    return any(
        isinstance(ident, Mapping) and _text(ident.get("system")) and _text(ident.get("value"))
        for ident in identifiers
    )


def _has_name(names: Any) -> bool:
    if not isinstance(names, list):
        return False
    for name in names:
        if not isinstance(name, Mapping) or not _text(name.get("family")):
            continue
        given = name.get("given")
        if isinstance(given, list) and any(_text(part) for part in given):
            return True
    return False


def _is_iso_date(value: Any) -> bool:
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_person(
    data: Mapping[str, Any],
    messages: MessageCatalog,
    *,
    gender_applicable: bool = True,
) -> list[str]:
    """Validate a Patient or Practitioner document.

    Requires at least one identifier with both system and value, and at
    least one name with a family name and a non-blank given name. Gender
    and birth date are optional but must be well formed when present.
    """
    errors: list[str] = []
    if not _has_identifier(data.get("identifier")):
        errors.append(messages.get(MessageKey.IDENTIFIER_REQUIRED))
    if not _has_name(data.get("name")):
        errors.append(messages.get(MessageKey.NAME_REQUIRED))

    gender = data.get("gender")
    if gender_applicable and gender is not None and gender not in _GENDERS:
        errors.append(messages.get(MessageKey.GENDER_INVALID))

    birth_date = data.get("birthDate")
    if birth_date is not None and not _is_iso_date(birth_date):
        errors.append(messages.get(MessageKey.BIRTH_DATE_INVALID))
    return errors


def validate_measurement(
    measurement: Any, messages: MessageCatalog, *, required: bool = False
) -> list[str]:
    """Check that systolic and diastolic readings are complete pairs."""
    if measurement is None:
        return [messages.get(MessageKey.MEASUREMENT_INCOMPLETE)] if required else []
    if not isinstance(measurement, Mapping):
        return [messages.get(MessageKey.MEASUREMENT_INCOMPLETE)]

    for magnitude_field, unit_field in (
        ("systolicMagnitude", "systolicUnit"),
        ("diastolicMagnitude", "diastolicUnit"),
    ):
        magnitude = measurement.get(magnitude_field)
        if (
            isinstance(magnitude, bool)
            or not isinstance(magnitude, int | float)
            or not _text(measurement.get(unit_field))
        ):
            return [messages.get(MessageKey.MEASUREMENT_INCOMPLETE)]
    return []


def validate_visit(data: Mapping[str, Any], messages: MessageCatalog) -> list[str]:
    errors: list[str] = []
    if not _text(data.get("patientNationalId")):
        errors.append(messages.get(MessageKey.PATIENT_KEY_REQUIRED))
    if not _text(data.get("practitionerNationalId")):
        errors.append(messages.get(MessageKey.PRACTITIONER_KEY_REQUIRED))
    errors.extend(validate_measurement(data.get("bloodPressureMeasurement"), messages))
    return errors


def validate_observation(data: Mapping[str, Any], messages: MessageCatalog) -> list[str]:
    errors: list[str] = []
    if not _text(data.get("patientNationalId")):
        errors.append(messages.get(MessageKey.PATIENT_KEY_REQUIRED))
    errors.extend(
        validate_measurement(data.get("bloodPressureMeasurement"), messages, required=True)
    )
    return errors


def validate_user(
    data: Mapping[str, Any], messages: MessageCatalog, *, creating: bool
) -> list[str]:
    errors: list[str] = []
    if not _text(data.get("email")):
        errors.append(messages.get(MessageKey.EMAIL_REQUIRED))
    if not _text(data.get("firstName")) or not _text(data.get("lastName")):
        errors.append(messages.get(MessageKey.USER_NAME_REQUIRED))
    if creating and not _text(data.get("password")):
        errors.append(messages.get(MessageKey.PASSWORD_REQUIRED))
    return errors
