"""Shared test fixtures and configuration for the clinirec test suite.

The records service is faked with ``httpx.MockTransport``: tests register
canned responses per method and path on ``FakeRecordsServer`` and inspect
the requests it received.
"""

from collections.abc import Callable
import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from clinirec.auth.session import SessionManager
from clinirec.core.config import Settings
from clinirec.core.messages import MessageCatalog
from clinirec.services.correlator import PatientRecordCorrelator
from clinirec.services.observation_cache import ObservationCache
from clinirec.services.patient_cache import PatientCache
from clinirec.services.practitioner_cache import PractitionerCache
from clinirec.services.user_cache import UserCache
from clinirec.services.visit_cache import VisitCache
from clinirec.storage.local_storage import InMemoryStorage
from clinirec.transport.gateway import TransportGateway

BASE_URL = "http://records.test/api"
API_PREFIX = "/api"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeRecordsServer:
    """In-process stand-in for the clinical-records REST API."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        *,
        handler: Handler | None = None,
    ) -> None:
        """Register a response for ``method`` ``path`` (path without the /api prefix)."""
        if handler is None:

            def handler(_request: httpx.Request) -> httpx.Response:
                if json_body is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=json_body)

        self.routes[(method.upper(), path)] = handler

    def fail(self, method: str, path: str, exc: Exception) -> None:
        """Make ``method`` ``path`` raise a transport exception."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[(method.upper(), path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper()
            and request.url.path.removeprefix(API_PREFIX) == path
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


class RecordFactory:
    """Builders for wire-shaped records as the server returns them."""

    @staticmethod
    def patient_document(national_id: str = "12345678A", **overrides: Any) -> dict[str, Any]:
        document: dict[str, Any] = {
            "resourceType": "Patient",
            "identifier": [{"system": "national", "value": national_id}],
            "name": [{"use": "official", "family": "García", "given": ["Ana", "María"]}],
            "gender": "female",
            "birthDate": "1980-04-12",
        }
        document.update(overrides)
        return document

    def patient_envelope(
        self,
        national_id: str = "12345678A",
        *,
        document: dict[str, Any] | str | None = None,
        ehr_id: Any = ...,
        record_id: int = 1,
        fhir_id: str | None = "pat-1",
    ) -> dict[str, Any]:
        """Patient envelope; ``ehr_id`` defaults to ``ehr-<national_id>``."""
        if ehr_id is ...:
            ehr_id = f"ehr-{national_id}"
        if document is None:
            document = self.patient_document(national_id)
        return {
            "id": record_id,
            "nationalId": national_id,
            "fhirId": fhir_id,
            "ehrId": ehr_id,
            "fhirPatient": document if isinstance(document, str) else json.dumps(document),
        }

    @staticmethod
    def practitioner_document(national_id: str = "87654321B", **overrides: Any) -> dict[str, Any]:
        document: dict[str, Any] = {
            "resourceType": "Practitioner",
            "identifier": [{"system": "national", "value": national_id}],
            "name": [{"family": "López", "given": ["Luis"]}],
            "gender": "male",
            "qualification": [{"code": {"text": "Cardiology"}}],
            "telecom": [{"system": "phone", "value": "600000000"}],
        }
        document.update(overrides)
        return document

    def practitioner_envelope(
        self,
        national_id: str = "87654321B",
        *,
        document: dict[str, Any] | str | None = None,
        fhir_id: str | None = "prac-1",
    ) -> dict[str, Any]:
        if document is None:
            document = self.practitioner_document(national_id)
        return {
            "id": 7,
            "nationalId": national_id,
            "fhirId": fhir_id,
            "fhirPractitionerJson": document if isinstance(document, str) else json.dumps(document),
        }

    @staticmethod
    def visit_response(
        uuid: str = "visit-1",
        patient_national_id: str = "12345678A",
        *,
        composition_id: str | None = "comp-1",
        ehr_id: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "visitUuid": uuid,
            "patientNationalId": patient_national_id,
            "practitionerNationalId": "87654321B",
            "practitionerName": "Luis López",
            "visitDate": "2024-05-02T10:30:00",
            "bloodPressureCompositionId": composition_id,
        }
        if ehr_id is not None:
            body["ehrId"] = ehr_id
        return body

    @staticmethod
    def flat_composition(systolic: float = 120, diastolic: float = 80) -> dict[str, Any]:
        prefix = "blood_pressure/blood_pressure/any_event:0"
        return {
            f"{prefix}/systolic|magnitude": systolic,
            f"{prefix}/systolic|unit": "mm[Hg]",
            f"{prefix}/diastolic|magnitude": diastolic,
            f"{prefix}/diastolic|unit": "mm[Hg]",
            f"{prefix}/time": "2024-05-02T10:35:00",
            "blood_pressure/blood_pressure/location_of_measurement|value": "Left arm",
            "blood_pressure/composer|name": "Luis López",
        }

    @staticmethod
    def measurement(systolic: float = 120, diastolic: float = 80) -> dict[str, Any]:
        return {
            "date": "2024-05-02T10:35:00",
            "systolicMagnitude": systolic,
            "systolicUnit": "mm[Hg]",
            "diastolicMagnitude": diastolic,
            "diastolicUnit": "mm[Hg]",
            "location": "Left arm",
        }

    def observation_document(self, patient_national_id: str = "12345678A") -> dict[str, Any]:
        return {
            "resourceType": "Observation",
            "status": "final",
            "code": {"coding": [{"system": "http://loinc.org", "code": "85354-9"}]},
            "subject": {"reference": f"Patient/{patient_national_id}"},
            "effectiveDateTime": "2024-05-02T10:35:00",
            "component": [
                {
                    "code": {"coding": [{"system": "http://loinc.org", "code": "8480-6"}]},
                    "valueQuantity": {"value": 120, "unit": "mm[Hg]"},
                },
                {
                    "code": {"coding": [{"system": "http://loinc.org", "code": "8462-4"}]},
                    "valueQuantity": {"value": 80, "unit": "mm[Hg]"},
                },
            ],
        }

    def observation_envelope(
        self,
        record_id: int | str = 31,
        patient_national_id: str = "12345678A",
        *,
        document: dict[str, Any] | str | None = None,
    ) -> dict[str, Any]:
        if document is None:
            document = self.observation_document(patient_national_id)
        return {
            "id": record_id,
            "patientNationalId": patient_national_id,
            "practitionerNationalId": "87654321B",
            "compositionId": "comp-9",
            "ehrId": f"ehr-{patient_national_id}",
            "fhirObservationJson": document if isinstance(document, str) else json.dumps(document),
        }


@pytest.fixture
def fake_server() -> FakeRecordsServer:
    """Fresh fake records service for each test."""
    return FakeRecordsServer()


@pytest.fixture
def records() -> RecordFactory:
    return RecordFactory()


@pytest.fixture
def messages() -> MessageCatalog:
    return MessageCatalog("en")


@pytest.fixture
def gateway(fake_server: FakeRecordsServer) -> TransportGateway:
    """Gateway wired to the fake server."""
    return TransportGateway(BASE_URL, transport=fake_server.transport)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def session(gateway: TransportGateway, storage: InMemoryStorage) -> SessionManager:
    manager = SessionManager(gateway, storage)
    gateway.token_provider = manager.get_token
    gateway.on_unauthorized = manager.handle_unauthorized
    return manager


@pytest.fixture
def patient_cache(gateway: TransportGateway, messages: MessageCatalog) -> PatientCache:
    return PatientCache(gateway, messages)


@pytest.fixture
def practitioner_cache(
    gateway: TransportGateway, messages: MessageCatalog
) -> PractitionerCache:
    return PractitionerCache(gateway, messages)


@pytest.fixture
def correlator(
    gateway: TransportGateway, patient_cache: PatientCache, messages: MessageCatalog
) -> PatientRecordCorrelator:
    return PatientRecordCorrelator(gateway, patient_cache, messages)


@pytest.fixture
def visit_cache(
    gateway: TransportGateway,
    messages: MessageCatalog,
    correlator: PatientRecordCorrelator,
) -> VisitCache:
    return VisitCache(gateway, messages, correlator=correlator)


@pytest.fixture
def observation_cache(
    gateway: TransportGateway,
    messages: MessageCatalog,
    correlator: PatientRecordCorrelator,
) -> ObservationCache:
    return ObservationCache(gateway, messages, correlator=correlator)


@pytest.fixture
def user_cache(gateway: TransportGateway, messages: MessageCatalog) -> UserCache:
    return UserCache(gateway, messages)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at the fake server and a temporary session file."""
    return Settings(
        CLINIREC_API_BASE_URL=BASE_URL,
        CLINIREC_STORAGE_PATH=tmp_path / "session.json",
        CLINIREC_LOCALE="en",
        ENVIRONMENT="testing",
    )
