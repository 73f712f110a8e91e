"""Operator-facing message catalog.

Every string that ends up in a cache's ``last_error`` or ``warnings`` comes
from here, so the operator reads it in the configured language and never
sees exception reprs or internal identifiers.
"""

from enum import StrEnum
from typing import Any


class MessageKey(StrEnum):
    """Identifiers of user-visible messages."""

    # Per-operation defaults
    LOAD_FAILED = "load_failed"
    FETCH_FAILED = "fetch_failed"
    CREATE_FAILED = "create_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"

    # Transport and parsing
    SERVICE_UNREACHABLE = "service_unreachable"
    NO_VALID_RECORDS = "no_valid_records"
    DOCUMENT_UNREADABLE = "document_unreadable"
    CONCURRENT_MUTATION = "concurrent_mutation"
    MEASUREMENT_UNAVAILABLE = "measurement_unavailable"
    RECORD_ID_UNRESOLVED = "record_id_unresolved"

    # Structural validation
    IDENTIFIER_REQUIRED = "identifier_required"
    NAME_REQUIRED = "name_required"
    GENDER_INVALID = "gender_invalid"
    BIRTH_DATE_INVALID = "birth_date_invalid"
    PATIENT_KEY_REQUIRED = "patient_key_required"
    PRACTITIONER_KEY_REQUIRED = "practitioner_key_required"
    MEASUREMENT_INCOMPLETE = "measurement_incomplete"
    EMAIL_REQUIRED = "email_required"
    USER_NAME_REQUIRED = "user_name_required"
    PASSWORD_REQUIRED = "password_required"
    KEY_REQUIRED = "key_required"


_ENTITY_LABELS: dict[str, dict[str, tuple[str, str]]] = {
    "en": {
        "patient": ("patient", "patients"),
        "practitioner": ("practitioner", "practitioners"),
        "visit": ("visit", "visits"),
        "observation": ("observation", "observations"),
        "user": ("user", "users"),
    },
    "es": {
        "patient": ("paciente", "pacientes"),
        "practitioner": ("profesional", "profesionales"),
        "visit": ("visita", "visitas"),
        "observation": ("observación", "observaciones"),
        "user": ("usuario", "usuarios"),
    },
}

_MESSAGES: dict[str, dict[MessageKey, str]] = {
    "en": {
        MessageKey.LOAD_FAILED: "Could not load the {plural}.",
        MessageKey.FETCH_FAILED: "Could not fetch the {entity}.",
        MessageKey.CREATE_FAILED: "Could not create the {entity}.",
        MessageKey.UPDATE_FAILED: "Could not update the {entity}.",
        MessageKey.DELETE_FAILED: "Could not delete the {entity}.",
        MessageKey.SERVICE_UNREACHABLE: "The records service could not be reached.",
        MessageKey.NO_VALID_RECORDS: "No valid {plural} were found.",
        MessageKey.DOCUMENT_UNREADABLE: "The {entity} information could not be read.",
        MessageKey.CONCURRENT_MUTATION: "Another change to this {entity} is still in progress.",
        MessageKey.MEASUREMENT_UNAVAILABLE: "Blood pressure details are not available for this visit.",
        MessageKey.RECORD_ID_UNRESOLVED: "The clinical record of the patient could not be located.",
        MessageKey.IDENTIFIER_REQUIRED: "At least one identifier with a system and a value is required.",
        MessageKey.NAME_REQUIRED: "At least one name with a family name and a given name is required.",
        MessageKey.GENDER_INVALID: "Gender must be one of: male, female, other, unknown.",
        MessageKey.BIRTH_DATE_INVALID: "Birth date must be a date in YYYY-MM-DD format.",
        MessageKey.PATIENT_KEY_REQUIRED: "The patient national identifier is required.",
        MessageKey.PRACTITIONER_KEY_REQUIRED: "The practitioner national identifier is required.",
        MessageKey.MEASUREMENT_INCOMPLETE: (
            "A blood pressure measurement needs a value and a unit "
            "for both systolic and diastolic pressure."
        ),
        MessageKey.EMAIL_REQUIRED: "An email address is required.",
        MessageKey.USER_NAME_REQUIRED: "First and last name are required.",
        MessageKey.PASSWORD_REQUIRED: "A password is required for new users.",
        MessageKey.KEY_REQUIRED: "The {entity} identifier is required.",
    },
    "es": {
        MessageKey.LOAD_FAILED: "Error al cargar los {plural}.",
        MessageKey.FETCH_FAILED: "Error al obtener el {entity}.",
        MessageKey.CREATE_FAILED: "Error al crear el {entity}.",
        MessageKey.UPDATE_FAILED: "Error al actualizar el {entity}.",
        MessageKey.DELETE_FAILED: "Error al eliminar el {entity}.",
        MessageKey.SERVICE_UNREACHABLE: "No se pudo contactar con el servicio de historias clínicas.",
        MessageKey.NO_VALID_RECORDS: "No disponemos de {plural} válidos.",
        MessageKey.DOCUMENT_UNREADABLE: "No se pudo procesar la información del {entity}.",
        MessageKey.CONCURRENT_MUTATION: "Hay otro cambio en curso para este {entity}.",
        MessageKey.MEASUREMENT_UNAVAILABLE: "La medición de presión arterial de esta visita no está disponible.",
        MessageKey.RECORD_ID_UNRESOLVED: "No se encontró la historia clínica del paciente.",
        MessageKey.IDENTIFIER_REQUIRED: "Se requiere al menos un identificador con sistema y valor.",
        MessageKey.NAME_REQUIRED: "Se requiere al menos un nombre con apellido y nombre de pila.",
        MessageKey.GENDER_INVALID: "El género debe ser: male, female, other o unknown.",
        MessageKey.BIRTH_DATE_INVALID: "La fecha de nacimiento debe tener el formato AAAA-MM-DD.",
        MessageKey.PATIENT_KEY_REQUIRED: "El identificador nacional del paciente es obligatorio.",
        MessageKey.PRACTITIONER_KEY_REQUIRED: "El identificador nacional del profesional es obligatorio.",
        MessageKey.MEASUREMENT_INCOMPLETE: (
            "La medición de presión arterial necesita valor y unidad "
            "para la sistólica y la diastólica."
        ),
        MessageKey.EMAIL_REQUIRED: "El correo electrónico es obligatorio.",
        MessageKey.USER_NAME_REQUIRED: "El nombre y los apellidos son obligatorios.",
        MessageKey.PASSWORD_REQUIRED: "La contraseña es obligatoria para usuarios nuevos.",
        MessageKey.KEY_REQUIRED: "El identificador del {entity} es obligatorio.",
    },
}


class MessageCatalog:
    """Resolve message keys to text in one locale."""

    def __init__(self, locale: str = "en") -> None:
        if locale not in _MESSAGES:
            locale = "en"
        self.locale = locale

    def entity_label(self, entity: str, *, plural: bool = False) -> str:
        singular, plural_label = _ENTITY_LABELS[self.locale].get(
            entity, (entity, f"{entity}s")
        )
        return plural_label if plural else singular

    def get(self, key: MessageKey, entity: str | None = None, **params: Any) -> str:
        """Render ``key``; ``entity`` fills the ``{entity}``/``{plural}`` slots."""
        template = _MESSAGES[self.locale][key]
        if entity is not None:
            params.setdefault("entity", self.entity_label(entity))
            params.setdefault("plural", self.entity_label(entity, plural=True))
        return template.format(**params)
