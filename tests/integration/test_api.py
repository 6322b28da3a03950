"""
Integration Tests for FastAPI Backend

Tests for API endpoints: health, patients and records, assistant chat and
analysis. Uses async httpx for ASGI app testing, with the completion
service replaced by a fake chat model.
"""
import pytest
import httpx
from datetime import datetime, timedelta, timezone

from aidoctor.main import (
    app,
    get_analysis_service,
    get_chat_service,
    get_completion_client,
    get_repository,
)
from aidoctor.services import AnalysisService, ChatService, InMemoryPatientRepository


@pytest.fixture
def repository() -> InMemoryPatientRepository:
    return InMemoryPatientRepository()


@pytest.fixture
def wire_app(repository, utc_policy):
    """Point the app's dependencies at a fresh repository and the given client."""
    def _wire(client):
        app.dependency_overrides[get_repository] = lambda: repository
        app.dependency_overrides[get_completion_client] = lambda: client
        app.dependency_overrides[get_chat_service] = lambda: ChatService(
            repository, client, policy=utc_policy
        )
        app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(
            repository, client, policy=utc_policy
        )
    yield _wire
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    """Create async test client."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


async def _create_patient(async_client) -> str:
    response = await async_client.post("/api/v1/patients", json={
        "name": "Zeynep Kaya",
        "age": 45,
        "gender": "Kadın",
        "complaint": "Karın ağrısı",
    })
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_root_endpoint(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["ok"]))
        response = await async_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert data["completion_service"]["is_available"] is True

    async def test_health_endpoint(self, async_client):
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_lab_categories(self, async_client):
        response = await async_client.get("/api/v1/labs/categories")
        assert response.status_code == 200

        categories = response.json()["categories"]
        assert {c["value"] for c in categories} >= {"HEMOGRAM", "CARDIAC"}


@pytest.mark.asyncio
class TestPatientEndpoints:
    """Tests for patient and record endpoints."""

    async def test_create_and_fetch_patient(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["ok"]))
        patient_id = await _create_patient(async_client)

        await async_client.post(f"/api/v1/patients/{patient_id}/vitals", json={"heart_rate": 98})
        await async_client.post(f"/api/v1/patients/{patient_id}/labs", json={
            "category": "HEMOGRAM",
            "test_name": "Tam kan",
            "parameters": [{"key": "WBC", "value": 14.2}],
        })
        await async_client.post(f"/api/v1/patients/{patient_id}/imaging", json={
            "imaging_type": "ULTRASOUND",
            "body_part": "Batın",
        })
        await async_client.put(f"/api/v1/patients/{patient_id}/history", json={"allergies": "Yok"})

        response = await async_client.get(f"/api/v1/patients/{patient_id}")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "Zeynep Kaya"
        assert data["vitals"][0]["heart_rate"] == 98
        assert data["labs"][0]["parameters"][0]["status"] == "HIGH"
        assert data["imaging"][0]["status"] == "PENDING"
        assert data["medical_history"]["allergies"] == "Yok"

    async def test_unknown_patient_is_404(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["ok"]))
        response = await async_client.get("/api/v1/patients/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "PATIENT_NOT_FOUND"

    async def test_invalid_payload_is_422(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["ok"]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/vitals", json={"heart_rate": "hızlı"})
        assert response.status_code == 422

    @pytest.mark.parametrize("vital", [
        {"heart_rate": -5},
        {"heart_rate": 301},
        {"blood_pressure_systolic": 320},
        {"blood_pressure_diastolic": 210},
        {"temperature": 80},
        {"temperature": 25},
        {"oxygen_saturation": 101},
        {"respiratory_rate": 120},
    ])
    async def test_out_of_range_vital_is_422(self, async_client, wire_app, fake_client, repository, vital):
        wire_app(fake_client(["ok"]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/vitals", json=vital)

        assert response.status_code == 422
        assert await repository.list_vitals(patient_id) == []

    @pytest.mark.parametrize("path,payload", [
        ("labs", {"test_name": "İdrar", "test_type": "SALIVA"}),
        ("labs", {"test_name": "Tam kan", "status": "DONE"}),
        ("imaging", {"imaging_type": "PET"}),
        ("imaging", {"imaging_type": "CT", "status": "LOST"}),
    ])
    async def test_unknown_order_type_or_status_is_422(self, async_client, wire_app, fake_client, path, payload):
        wire_app(fake_client(["ok"]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/{path}", json=payload)

        assert response.status_code == 422


@pytest.mark.asyncio
class TestAssistantEndpoints:
    """Tests for chat and analysis endpoints."""

    async def test_chat_round_trip(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["Akut batın düşünülmeli."]))
        patient_id = await _create_patient(async_client)
        recorded_at = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
        await async_client.post(f"/api/v1/patients/{patient_id}/vitals", json={
            "recorded_at": recorded_at,
            "heart_rate": 104,
        })

        response = await async_client.post(f"/api/v1/patients/{patient_id}/chat", json={"message": "Ön tanı?"})
        assert response.status_code == 200

        data = response.json()
        assert data["ai_message"]["content"] == "Akut batın düşünülmeli."
        assert data["has_recent_changes"] is True
        assert data["recent_changes"][0]["type"] == "vital"

        history = await async_client.get(f"/api/v1/patients/{patient_id}/chat")
        assert [m["role"] for m in history.json()["messages"]] == ["USER", "ASSISTANT"]

        cleared = await async_client.delete(f"/api/v1/patients/{patient_id}/chat")
        assert cleared.json()["deleted"] == 2

    async def test_empty_message_is_400(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["unused"]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/chat", json={"message": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "RECORD_VALIDATION_ERROR"

    async def test_completion_failure_is_502(self, async_client, wire_app, failing_client):
        wire_app(failing_client)
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/chat", json={"message": "?"})

        assert response.status_code == 502
        assert response.json()["error"] == "COMPLETION_SERVICE_ERROR"

    async def test_analysis(self, async_client, wire_app, fake_client, analysis_json):
        wire_app(fake_client([analysis_json]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/analysis")
        assert response.status_code == 201
        assert response.json()["output_data"]["acil_durum"] is True

        listing = await async_client.get(f"/api/v1/patients/{patient_id}/analysis")
        assert len(listing.json()["analyses"]) == 1

    async def test_unparsable_analysis_is_502(self, async_client, wire_app, fake_client):
        wire_app(fake_client(["Analiz yapılamadı."]))
        patient_id = await _create_patient(async_client)

        response = await async_client.post(f"/api/v1/patients/{patient_id}/analysis")

        assert response.status_code == 502
        assert response.json()["error"] == "RESPONSE_SCHEMA_ERROR"
