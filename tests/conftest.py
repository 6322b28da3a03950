"""
Pytest Configuration and Fixtures

Shared fixtures for clinical assistant tests.
"""
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List
import sys

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from pydantic import Field

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from aidoctor.config import CompletionConfig, ContextPolicy
from aidoctor.core.llm import CompletionClient
from aidoctor.core.records import (
    Demographics,
    LabParameter,
    LabResult,
    ParameterStatus,
    VitalSign,
    ImagingResult,
)


class RecordingChatModel(FakeListChatModel):
    """Fake chat model that keeps every message list it receives."""
    received: List[Any] = Field(default_factory=list)

    def _call(self, messages, stop=None, run_manager=None, **kwargs):
        self.received.append(list(messages))
        return super()._call(messages, stop=stop, run_manager=run_manager, **kwargs)


class FailingChatModel(BaseChatModel):
    """Chat model whose upstream is always down."""

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        raise ConnectionError("upstream unavailable")

    @property
    def _llm_type(self) -> str:
        return "failing-fake"


# Fixtures
@pytest.fixture
def utc_policy() -> ContextPolicy:
    """Context policy that displays times in UTC."""
    return ContextPolicy(display_utc_offset_hours=0)


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def demographics() -> Demographics:
    return Demographics(
        name="Ayşe Yılmaz",
        age=54,
        gender="Kadın",
        complaint="Göğüs ağrısı",
        status="ACİL",
        priority="yüksek",
        patient_id="P-001",
    )


@pytest.fixture
def make_vital(base_time):
    """Factory for vital signs recorded ``minutes`` after base_time."""
    def _make(minutes: int = 0, **overrides) -> VitalSign:
        values: Dict[str, Any] = {
            "patient_id": "P-001",
            "recorded_at": base_time + timedelta(minutes=minutes),
            "heart_rate": 88.0,
            "blood_pressure_systolic": 130.0,
            "blood_pressure_diastolic": 85.0,
            "temperature": 36.8,
            "oxygen_saturation": 97.0,
            "respiratory_rate": 16.0,
        }
        values.update(overrides)
        return VitalSign(**values)
    return _make


@pytest.fixture
def make_lab(base_time):
    """Factory for lab results ordered ``minutes`` after base_time."""
    def _make(minutes: int = 0, **overrides) -> LabResult:
        values: Dict[str, Any] = {
            "patient_id": "P-001",
            "ordered_at": base_time + timedelta(minutes=minutes),
            "category": "CARDIAC",
            "test_name": "Troponin",
            "status": "COMPLETED",
            "parameters": (
                LabParameter(
                    key="TROPONIN_I",
                    name="Troponin I",
                    value=0.02,
                    unit="ng/mL",
                    ref_min=0,
                    ref_max=0.04,
                    status=ParameterStatus.NORMAL,
                ),
            ),
        }
        values.update(overrides)
        return LabResult(**values)
    return _make


@pytest.fixture
def make_imaging(base_time):
    """Factory for imaging results ordered ``minutes`` after base_time."""
    def _make(minutes: int = 0, **overrides) -> ImagingResult:
        values: Dict[str, Any] = {
            "patient_id": "P-001",
            "ordered_at": base_time + timedelta(minutes=minutes),
            "imaging_type": "XRAY",
            "body_part": "Akciğer",
            "findings": "Aktif infiltrasyon izlenmedi.",
            "status": "COMPLETED",
        }
        values.update(overrides)
        return ImagingResult(**values)
    return _make


@pytest.fixture
def completion_config() -> CompletionConfig:
    """Completion config without an API key."""
    return CompletionConfig(api_key=None, model="gemini-test")


@pytest.fixture
def fake_client(completion_config):
    """Factory for a CompletionClient backed by a recording fake model."""
    def _make(responses: List[str]) -> CompletionClient:
        return CompletionClient(completion_config, chat_model=RecordingChatModel(responses=responses))
    return _make


@pytest.fixture
def failing_client(completion_config) -> CompletionClient:
    return CompletionClient(completion_config, chat_model=FailingChatModel())


@pytest.fixture
def analysis_json() -> str:
    """A well-formed analysis answer wrapped in a markdown fence."""
    return """```json
{
  "genel_risk_skoru": 72,
  "acil_durum": true,
  "eksik_veriler": ["EKG"],
  "olasi_tanilar": [
    {"tani": "Stabil angina", "icd10": "I20.8", "olasilik": 30, "severity": "MEDIUM"},
    {"tani": "NSTEMI", "icd10": "I21.4", "olasilik": 55, "severity": "HIGH"},
    {"tani": "Perikardit", "icd10": "I30.9", "olasilik": 30, "severity": "MEDIUM"}
  ],
  "onerilen_tetkikler": [{"test": "Seri troponin", "oncelik": "URGENT", "neden": "Dinamik değişim"}],
  "acil_mudahale": [{"mudahale": "Aspirin 300 mg", "oncelik": "IMMEDIATE", "aciklama": "Çiğnetilerek"}],
  "risk_faktorleri": [{"risk": "Hipertansiyon", "seviye": "HIGH", "aciklama": "Kontrolsüz"}],
  "klinik_oneri": "Kardiyoloji konsültasyonu istenmeli."
}
```"""
