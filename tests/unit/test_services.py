"""
Unit Tests for the Chat and Analysis Services

Runs the full turn workflow against the in-memory repository and a fake
chat model.
"""
import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from aidoctor.config import ContextPolicy
from aidoctor.core.llm.prompts import CHANGES_SECTION_HEADER
from aidoctor.services import (
    AnalysisService,
    ChatService,
    InMemoryPatientRepository,
    load_patient_context,
)
from aidoctor.utils import (
    CompletionServiceError,
    PatientNotFoundError,
    RecordValidationError,
    ResponseSchemaError,
)


def _minutes_from_now(minutes: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(minutes=minutes)).isoformat()


# Fixtures
@pytest.fixture
def repository() -> InMemoryPatientRepository:
    return InMemoryPatientRepository()


@pytest.fixture
async def patient_id(repository) -> str:
    patient = await repository.create_patient({
        "name": "Mehmet Demir",
        "age": 67,
        "gender": "Erkek",
        "complaint": "Nefes darlığı",
    })
    await repository.add_vital(patient["id"], {
        "recorded_at": _minutes_from_now(-10),
        "heart_rate": 112,
        "oxygen_saturation": 89,
    })
    return patient["id"]


@pytest.fixture
def chat_service(repository, fake_client, utc_policy):
    def _make(responses, serialize_turns=True) -> ChatService:
        return ChatService(
            repository,
            fake_client(responses),
            policy=utc_policy,
            serialize_turns=serialize_turns,
        )
    return _make


@pytest.mark.asyncio
class TestChatService:
    """Tests for ChatService."""

    async def test_first_turn_reports_existing_records(self, chat_service, patient_id):
        service = chat_service(["SpO2 düşük, oksijen başlayın."])

        exchange = await service.send_message(patient_id, "Hasta nasıl?")

        assert exchange.has_recent_changes
        assert exchange.recent_changes[0]["type"] == "vital"
        assert exchange.user_turn["role"] == "USER"
        assert exchange.user_turn["content"] == "Hasta nasıl?"
        assert exchange.assistant_turn["role"] == "ASSISTANT"
        assert exchange.assistant_turn["content"] == "SpO2 düşük, oksijen başlayın."

        metadata = exchange.assistant_turn["metadata"]
        assert metadata["has_recent_changes"] is True
        assert metadata["recent_changes_count"] == 1
        assert metadata["model"]
        assert metadata["tokens"] == 0

    async def test_second_turn_without_new_records(self, chat_service, patient_id):
        service = chat_service(["ilk", "ikinci"])

        await service.send_message(patient_id, "Hasta nasıl?")
        exchange = await service.send_message(patient_id, "Başka?")

        assert not exchange.has_recent_changes
        assert exchange.assistant_turn["metadata"]["recent_changes_count"] == 0

        sent = service.client._injected_model.received[1]
        assert len(sent) == 4
        assert CHANGES_SECTION_HEADER not in sent[0].content
        assert sent[1].content == "Hasta nasıl?"
        assert sent[2].content == "ilk"

    async def test_record_added_after_answer_is_reported(self, chat_service, repository, patient_id):
        service = chat_service(["ilk", "ikinci"])
        await service.send_message(patient_id, "Hasta nasıl?")

        await repository.add_lab(patient_id, {
            "ordered_at": _minutes_from_now(1),
            "category": "CARDIAC",
            "test_name": "Troponin",
            "status": "COMPLETED",
            "parameters": [{"key": "TROPONIN_I", "value": 1.2}],
        })
        exchange = await service.send_message(patient_id, "Yeni sonuç var mı?")

        assert [c["type"] for c in exchange.recent_changes] == ["lab"]
        system = service.client._injected_model.received[1][0].content
        assert "Yeni Lab Sonucu Eklendi" in system
        assert "KRİTİK DEĞER: Troponin I" in system

    async def test_empty_message_is_rejected(self, chat_service, patient_id):
        service = chat_service(["unused"])

        with pytest.raises(RecordValidationError):
            await service.send_message(patient_id, "   ")

        assert await service.get_history(patient_id) == []

    async def test_unknown_patient(self, chat_service):
        service = chat_service(["unused"])

        with pytest.raises(PatientNotFoundError):
            await service.send_message("missing", "Merhaba")
        with pytest.raises(PatientNotFoundError):
            await service.get_history("missing")

    async def test_completion_failure_stores_nothing(self, repository, failing_client, utc_policy, patient_id):
        service = ChatService(repository, failing_client, policy=utc_policy)

        with pytest.raises(CompletionServiceError):
            await service.send_message(patient_id, "Hasta nasıl?")

        assert await service.get_history(patient_id) == []

    async def test_clear_history_resets_cutoff(self, chat_service, patient_id):
        service = chat_service(["ilk", "ikinci", "üçüncü"])
        await service.send_message(patient_id, "1")
        await service.send_message(patient_id, "2")

        deleted = await service.clear_history(patient_id)
        exchange = await service.send_message(patient_id, "3")

        assert deleted == 4
        assert exchange.has_recent_changes
        assert len(await service.get_history(patient_id)) == 2

    async def test_history_is_chronological(self, chat_service, patient_id):
        service = chat_service(["a", "b"])
        await service.send_message(patient_id, "1")
        await service.send_message(patient_id, "2")

        history = await service.get_history(patient_id)

        assert [t["content"] for t in history] == ["1", "a", "2", "b"]

    async def test_concurrent_turns_are_serialized(self, chat_service, patient_id):
        service = chat_service(["a", "b"])

        await asyncio.gather(
            service.send_message(patient_id, "1"),
            service.send_message(patient_id, "2"),
        )

        received = service.client._injected_model.received
        assert len(received[0]) == 2
        assert len(received[1]) == 4
        assert len(await service.get_history(patient_id)) == 4

    async def test_locks_are_dropped_when_idle(self, chat_service, patient_id):
        service = chat_service(["a", "b"])

        await asyncio.gather(
            service.send_message(patient_id, "1"),
            service.send_message(patient_id, "2"),
        )

        assert service._locks == {}
        assert service._lock_users == {}

    async def test_message_is_stored_trimmed(self, chat_service, patient_id):
        service = chat_service(["a"])

        exchange = await service.send_message(patient_id, "  Hasta nasıl?\n")

        assert exchange.user_turn["content"] == "Hasta nasıl?"
        assert service.client._injected_model.received[0][-1].content == "Hasta nasıl?"

    async def test_malformed_stored_vital_does_not_block_turn(self, chat_service, repository, patient_id):
        # Written around the validating add_vital, as an older document would be
        repository._vitals[patient_id].append({
            "id": "bozuk",
            "recordedAt": _minutes_from_now(-1),
            "heartRate": "120 bpm",
        })
        service = chat_service(["Devam edin."])

        exchange = await service.send_message(patient_id, "Hasta nasıl?")

        assert exchange.assistant_turn["content"] == "Devam edin."
        system = service.client._injected_model.received[0][0].content
        assert "Nabız: 112 bpm" in system
        assert "120 bpm" not in system

    async def test_history_window_limits_fetch(self, repository, fake_client, patient_id):
        service = ChatService(
            repository, fake_client(["x"] * 10), policy=ContextPolicy(history_window=2)
        )
        for i in range(3):
            await service.send_message(patient_id, str(i))

        # system + last two stored turns + new question
        assert len(service.client._injected_model.received[2]) == 4


@pytest.mark.asyncio
class TestAnalysisService:
    """Tests for AnalysisService."""

    async def test_analysis_is_stored(self, repository, fake_client, utc_policy, patient_id, analysis_json):
        service = AnalysisService(repository, fake_client([analysis_json]), policy=utc_policy)

        record = await service.analyze_patient(patient_id)

        assert record["analysis_type"] == "DIAGNOSIS"
        assert record["output_data"]["olasi_tanilar"][0]["tani"] == "NSTEMI"
        assert "Hasta Bilgileri:" in record["input_data"]["prompt"]
        assert record["references"]["tokens"] == 0
        assert await service.list_analyses(patient_id) == [record]

    async def test_schema_failure_stores_nothing(self, repository, fake_client, utc_policy, patient_id):
        service = AnalysisService(repository, fake_client(["Üzgünüm, analiz yapamıyorum."]), policy=utc_policy)

        with pytest.raises(ResponseSchemaError):
            await service.analyze_patient(patient_id)

        assert await service.list_analyses(patient_id) == []

    async def test_unknown_patient(self, repository, fake_client):
        service = AnalysisService(repository, fake_client(["{}"]))

        with pytest.raises(PatientNotFoundError):
            await service.analyze_patient("missing")
        with pytest.raises(PatientNotFoundError):
            await service.list_analyses("missing")


@pytest.mark.asyncio
class TestInMemoryRepository:
    """Tests for the in-memory repository and context loading."""

    async def test_records_come_back_newest_first(self, repository, patient_id):
        await repository.add_vital(patient_id, {"recorded_at": _minutes_from_now(-60), "heart_rate": 70})
        await repository.add_vital(patient_id, {"recorded_at": _minutes_from_now(-1), "heart_rate": 90})

        vitals = await repository.list_vitals(patient_id)

        assert [v["heart_rate"] for v in vitals] == [90, 112, 70]

    async def test_lab_parameters_are_classified_on_write(self, repository, patient_id):
        lab = await repository.add_lab(patient_id, {
            "category": "BIOCHEMISTRY",
            "parameters": [{"key": "POTASSIUM", "value": 6.8}],
        })

        assert lab["parameters"][0]["status"] == "CRITICAL_HIGH"
        assert lab["parameters"][0]["name"] == "Potasyum"
        assert lab["ordered_at"] is not None

    async def test_invalid_record_is_rejected(self, repository, patient_id):
        with pytest.raises(RecordValidationError):
            await repository.add_vital(patient_id, {"heart_rate": "hızlı"})

    async def test_writes_require_patient(self, repository):
        with pytest.raises(PatientNotFoundError):
            await repository.add_imaging("missing", {"imaging_type": "CT"})

    async def test_load_patient_context(self, repository, patient_id):
        await repository.set_medical_history(patient_id, {"allergies": "Penisilin"})

        context, turns = await load_patient_context(repository, patient_id, history_limit=0)

        assert turns == []
        assert context.demographics.name == "Mehmet Demir"
        assert context.records.vitals[0].heart_rate == 112
        assert context.history.allergies == "Penisilin"

    async def test_load_unknown_patient(self, repository):
        with pytest.raises(PatientNotFoundError):
            await load_patient_context(repository, "missing")
