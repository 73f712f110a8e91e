"""Custom exception hierarchy for the clinirec client.

Every failure the client can surface maps onto one of four families:

- validation failures, raised before any network call
- transport failures, split by whether a response, no response, or no
  request at all was produced
- document parse failures for malformed embedded clinical documents
- session and concurrency failures

Callers catch ``ClinirecBaseError`` to handle everything the client raises.
"""

from typing import Any


class ClinirecBaseError(Exception):
    """Base exception for all clinirec specific errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {super().__str__()}"
        return super().__str__()


# ==============================================================================
# Data Validation Exceptions
# ==============================================================================


class DataValidationError(ClinirecBaseError):
    """Raised when local structural validation fails."""

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        field_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code="DATA_VALIDATION_ERROR", **kwargs)
        self.errors = errors or [message]
        self.field_name = field_name


class MissingBusinessKeyError(DataValidationError):
    """Raised when the record to send carries no business key."""

    def __init__(self, entity: str, message: str) -> None:
        super().__init__(message, field_name="identifier")
        self.entity = entity


# ==============================================================================
# Transport Exceptions
# ==============================================================================


class TransportError(ClinirecBaseError):
    """Base class for failures talking to the records service.

    ``status`` and ``body`` are only populated when the server answered.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: Any = None,
        error_code: str = "TRANSPORT_ERROR",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=error_code, **kwargs)
        self.status = status
        self.body = body

    def server_message(self) -> str | None:
        """Return the human readable message carried by the response body."""
        if isinstance(self.body, dict):
            for field in ("message", "error"):
                value = self.body.get(field)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        return None


class HTTPResponseError(TransportError):
    """Raised when the server answered with a non-success status."""

    def __init__(self, status: int, body: Any = None, *, method: str = "", url: str = "") -> None:
        message = f"{method} {url} failed with status {status}".strip()
        super().__init__(
            message, status=status, body=body, error_code="HTTP_RESPONSE_ERROR"
        )
        self.method = method
        self.url = url

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class NoResponseError(TransportError):
    """Raised when a request was sent but no response arrived."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="NO_RESPONSE")


class RequestSetupError(TransportError):
    """Raised when a request could not be constructed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="REQUEST_SETUP_ERROR")


# ==============================================================================
# Document Exceptions
# ==============================================================================


class DocumentParseError(ClinirecBaseError):
    """Raised when an embedded clinical document cannot be parsed."""

    def __init__(self, entity: str, reason: str, *, record_id: Any = None) -> None:
        message = f"Could not parse {entity} document"
        if record_id is not None:
            message += f" for record {record_id}"
        message += f": {reason}"
        super().__init__(message, error_code="DOCUMENT_PARSE_ERROR")
        self.entity = entity
        self.reason = reason
        self.record_id = record_id


# ==============================================================================
# Session and Concurrency Exceptions
# ==============================================================================


class AuthenticationError(ClinirecBaseError):
    """Raised when the login response cannot establish a session."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


class ConcurrentMutationError(ClinirecBaseError):
    """Raised when a mutation is issued for a key that already has one in flight."""

    def __init__(self, entity: str, key: Any) -> None:
        message = f"A {entity} mutation for key {key} is already in progress"
        super().__init__(message, error_code="CONCURRENT_MUTATION")
        self.entity = entity
        self.key = key


# ==============================================================================
# Configuration Exceptions
# ==============================================================================


class ConfigurationError(ClinirecBaseError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self, message: str, *, config_key: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)
        self.config_key = config_key


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration value is invalid."""

    def __init__(self, config_key: str, value: Any, reason: str | None = None) -> None:
        message = f"Invalid configuration value for {config_key}: {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, config_key=config_key)
        self.value = value
        self.reason = reason
