"""Tests for the visit cache."""

import json
from typing import Any

import pytest

from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.services.patient_cache import PatientCache
from clinirec.services.visit_cache import VisitCache


@pytest.fixture
def visit_request(records: Any) -> dict[str, Any]:
    return {
        "patientNationalId": "12345678A",
        "practitionerNationalId": "87654321B",
        "visitDate": "2024-05-02T10:30:00",
        "bloodPressureMeasurement": records.measurement(),
    }


class TestVisitCreate:
    """Test visit creation and measurement hydration."""

    @pytest.mark.asyncio
    async def test_create_hydrates_measurement(
        self,
        fake_server: Any,
        records: Any,
        patient_cache: PatientCache,
        visit_cache: VisitCache,
        visit_request: dict[str, Any],
    ) -> None:
        fake_server.add("GET", "/patients", json_body=[records.patient_envelope("12345678A")])
        await patient_cache.load_all()
        fake_server.add("POST", "/visits", 201, records.visit_response("v-1"))
        fake_server.add(
            "GET", "/observations/blood-pressure/comp-1", json_body=records.flat_composition(131, 84)
        )

        visit = await visit_cache.create(visit_request)

        assert visit is not None
        assert visit.blood_pressure_measurement.systolic_magnitude == 131
        assert visit_cache.peek("v-1") == visit
        assert visit_cache.warnings == []
        lookup = fake_server.calls("GET", "/observations/blood-pressure/comp-1")[0]
        assert lookup.url.params["ehrId"] == "ehr-12345678A"

    @pytest.mark.asyncio
    async def test_create_sends_camel_case_body(
        self, fake_server: Any, records: Any, visit_cache: VisitCache, visit_request: dict[str, Any]
    ) -> None:
        fake_server.add("POST", "/visits", 201, records.visit_response("v-1", composition_id=None))

        await visit_cache.create(visit_request)

        body = json.loads(fake_server.calls("POST", "/visits")[0].content)
        assert body["patientNationalId"] == "12345678A"
        assert body["bloodPressureMeasurement"]["systolicUnit"] == "mm[Hg]"

    @pytest.mark.asyncio
    async def test_unknown_patient_skips_measurement_with_warning(
        self,
        fake_server: Any,
        records: Any,
        visit_cache: VisitCache,
        visit_request: dict[str, Any],
        messages: MessageCatalog,
    ) -> None:
        fake_server.add("POST", "/visits", 201, records.visit_response("v-1"))

        visit = await visit_cache.create(visit_request)

        assert visit is not None
        assert visit.blood_pressure_measurement is None
        assert visit_cache.last_error is None
        assert visit_cache.warnings == [messages.get(MessageKey.RECORD_ID_UNRESOLVED)]

    @pytest.mark.asyncio
    async def test_incomplete_measurement_rejected_locally(
        self,
        fake_server: Any,
        visit_cache: VisitCache,
        visit_request: dict[str, Any],
        messages: MessageCatalog,
    ) -> None:
        del visit_request["bloodPressureMeasurement"]["diastolicUnit"]

        assert await visit_cache.create(visit_request) is None
        assert visit_cache.last_error == messages.get(MessageKey.MEASUREMENT_INCOMPLETE)
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_visit_without_measurement_is_valid(
        self, fake_server: Any, records: Any, visit_cache: VisitCache, visit_request: dict[str, Any]
    ) -> None:
        del visit_request["bloodPressureMeasurement"]
        fake_server.add("POST", "/visits", 201, records.visit_response("v-2", composition_id=None))

        visit = await visit_cache.create(visit_request)

        assert visit is not None
        assert visit.blood_pressure_measurement is None
        assert visit_cache.warnings == []


class TestVisitReads:
    """Test visit reads."""

    @pytest.mark.asyncio
    async def test_get_by_key_uses_envelope_ehr_id(
        self, fake_server: Any, records: Any, visit_cache: VisitCache
    ) -> None:
        fake_server.add("GET", "/visits/v-1", json_body=records.visit_response("v-1", ehr_id="ehr-9"))
        fake_server.add(
            "GET", "/observations/blood-pressure/comp-1", json_body=records.flat_composition()
        )

        visit = await visit_cache.get_by_key("v-1")

        assert visit is not None
        assert visit.blood_pressure_measurement is not None
        lookup = fake_server.calls("GET", "/observations/blood-pressure/comp-1")[0]
        assert lookup.url.params["ehrId"] == "ehr-9"

    @pytest.mark.asyncio
    async def test_load_for_patient(
        self, fake_server: Any, records: Any, visit_cache: VisitCache
    ) -> None:
        fake_server.add(
            "GET",
            "/visits/patient/12345678A",
            json_body=[records.visit_response("v-1"), records.visit_response("v-2")],
        )

        visits = await visit_cache.load_for_patient("12345678A")

        assert [v.uuid for v in visits] == ["v-1", "v-2"]
        assert len(visit_cache) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("national_id", ["", "N/A"])
    async def test_load_for_patient_requires_valid_id(
        self, fake_server: Any, visit_cache: VisitCache, national_id: str
    ) -> None:
        assert await visit_cache.load_for_patient(national_id) is None
        assert visit_cache.last_error is not None
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_load_all_drops_malformed_visits(
        self, fake_server: Any, records: Any, visit_cache: VisitCache
    ) -> None:
        broken = records.visit_response("v-2")
        del broken["patientNationalId"]
        fake_server.add("GET", "/visits", json_body=[records.visit_response("v-1"), broken])

        await visit_cache.load_all()

        assert [v.uuid for v in visit_cache.records] == ["v-1"]
        assert visit_cache.last_error is None
