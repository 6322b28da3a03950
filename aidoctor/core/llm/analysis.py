"""
Analysis Request Builder

One-shot structured diagnostic analysis. Unlike the chat turn, the
response must be a JSON object with a fixed schema; ``parse_analysis_response``
validates it and ranks the differential diagnoses.
"""
import json
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from aidoctor.config import ContextPolicy
from aidoctor.core.context.formatting import (
    PENDING_REPORT,
    fmt_number,
    fmt_ref_range,
    fmt_results_blob,
    fmt_text,
    imaging_title,
)
from aidoctor.core.records.models import ImagingResult, LabResult, MedicalHistory, PatientContext, VitalSign
from aidoctor.utils import ResponseSchemaError, get_logger

from .messages import SYSTEM, USER, CompletionMessage, CompletionOptions, CompletionRequest
from .prompts import ANALYSIS_SYSTEM_INSTRUCTION, ANALYSIS_TASK

logger = get_logger(__name__)

# Greedy body: runs from the first opening fence to the last closing one
_FENCE = re.compile(r"```(?:json)?([\s\S]*)```", re.IGNORECASE)


# ── Response schema ─────────────────────────────────────────────────────

class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Diagnosis(_Lenient):
    tani: str
    icd10: Optional[str] = None
    olasilik: float = Field(ge=0, le=100)
    severity: Optional[str] = None
    aciklama: str = ""
    destekleyen_bulgular: List[str] = Field(default_factory=list)


class RecommendedTest(_Lenient):
    test: str
    oncelik: Optional[str] = None
    neden: str = ""


class Intervention(_Lenient):
    mudahale: str
    oncelik: Optional[str] = None
    aciklama: str = ""


class RiskFactor(_Lenient):
    risk: str
    seviye: Optional[str] = None
    aciklama: str = ""


class AnalysisResult(_Lenient):
    """Structured diagnostic analysis as returned by the model."""
    genel_risk_skoru: float = Field(ge=0, le=100)
    acil_durum: bool
    eksik_veriler: List[str] = Field(default_factory=list)
    olasi_tanilar: List[Diagnosis] = Field(default_factory=list)
    onerilen_tetkikler: List[RecommendedTest] = Field(default_factory=list)
    acil_mudahale: List[Intervention] = Field(default_factory=list)
    risk_faktorleri: List[RiskFactor] = Field(default_factory=list)
    klinik_oneri: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


# ── Prompt ──────────────────────────────────────────────────────────────

def _vital_block(vital: VitalSign) -> List[str]:
    return [
        "- Vital Bulgular:",
        f"  * Nabız: {fmt_number(vital.heart_rate)} bpm",
        f"  * Tansiyon: {fmt_number(vital.blood_pressure_systolic)}/"
        f"{fmt_number(vital.blood_pressure_diastolic)} mmHg",
        f"  * Ateş: {fmt_number(vital.temperature)}°C",
        f"  * SpO2: {fmt_number(vital.oxygen_saturation)}%",
        f"  * Solunum: {fmt_number(vital.respiratory_rate)}/dk",
    ]


def _lab_line(lab: LabResult) -> str:
    if lab.parameters:
        summary = ", ".join(
            f"{p.name}: {fmt_number(p.value)} {p.unit} [Normal: {fmt_ref_range(p)}] - {p.status.value}"
            for p in lab.parameters
        )
        return f"  * {lab.test_name or lab.category} ({lab.category}): {summary}"
    return f"  * {lab.display_name}: {fmt_results_blob(lab.results or {}, indent=None)}"


def _imaging_block(img: ImagingResult) -> str:
    lines = [f"  * {imaging_title(img)}:", f"    Bulgular: {img.findings or PENDING_REPORT}"]
    if img.impression:
        lines.append(f"    Yorum: {img.impression}")
    if img.technique:
        lines.append(f"    Teknik: {img.technique}")
    return "\n".join(lines)


def _history_block(history: MedicalHistory) -> List[str]:
    return [
        "- Tıbbi Geçmiş:",
        f"  * Alerjiler: {fmt_text(history.allergies, 'Yok')}",
        f"  * Kronik Hastalıklar: {fmt_text(history.chronic_diseases, 'Yok')}",
        f"  * Kullandığı İlaçlar: {fmt_text(history.current_medications, 'Yok')}",
        f"  * Geçirilmiş Ameliyatlar: {fmt_text(history.surgical_history, 'Yok')}",
    ]


def build_analysis_prompt(patient_data: PatientContext, policy: Optional[ContextPolicy] = None) -> str:
    """
    Build the one-shot analysis prompt: patient data, then the task and
    the JSON response schema.

    Only the latest vital set is included; all labs and imaging are.
    """
    policy = policy or ContextPolicy()
    demo = patient_data.demographics
    records = patient_data.records

    lines = [
        "Hasta Bilgileri:",
        f"- İsim: {fmt_text(demo.name, 'Bilinmiyor')}",
        f"- Yaş: {demo.age if demo.age is not None else 'Bilinmiyor'}",
        f"- Cinsiyet: {fmt_text(demo.gender, 'Bilinmiyor')}",
        f"- Şikayet: {fmt_text(demo.complaint, 'Bilinmiyor')}",
        f"- Öncelik: {demo.priority or policy.default_priority}",
    ]
    if records.vitals:
        lines.extend(_vital_block(records.vitals[0]))
    if records.labs:
        lines.append("- Laboratuvar Sonuçları:")
        lines.extend(_lab_line(lab) for lab in records.labs)
    if records.imaging:
        lines.append("- Görüntüleme Bulguları:")
        lines.extend(_imaging_block(img) for img in records.imaging)
    if patient_data.history is not None:
        lines.extend(_history_block(patient_data.history))

    return "\n".join(lines) + "\n\n" + ANALYSIS_TASK


def build_analysis_request(
    patient_data: PatientContext,
    options: Optional[CompletionOptions] = None,
    policy: Optional[ContextPolicy] = None,
) -> CompletionRequest:
    return CompletionRequest(
        messages=[
            CompletionMessage(role=SYSTEM, content=ANALYSIS_SYSTEM_INSTRUCTION),
            CompletionMessage(role=USER, content=build_analysis_prompt(patient_data, policy)),
        ],
        options=options or CompletionOptions(),
    )


# ── Response parsing ────────────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    """Return the body of the outer ```json fence, or the stripped text."""
    stripped = (text or "").strip()
    # Unfenced JSON may carry backticks inside its string values
    if stripped.startswith(("{", "[")):
        return stripped
    match = _FENCE.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def rank_diagnoses(diagnoses: List[Diagnosis]) -> List[Diagnosis]:
    """Highest probability first; equal probabilities keep model order."""
    return sorted(diagnoses, key=lambda d: d.olasilik, reverse=True)


def parse_analysis_response(text: str) -> AnalysisResult:
    """
    Parse and validate the model's analysis response.

    Raises:
        ResponseSchemaError: not JSON, not an object, or schema mismatch
    """
    body = strip_code_fences(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        logger.error(f"Analysis response is not valid JSON: {e}")
        raise ResponseSchemaError(f"Analysis response is not valid JSON: {e}", raw_response=text) from e

    if not isinstance(payload, dict):
        raise ResponseSchemaError(
            f"Analysis response must be a JSON object, got {type(payload).__name__}", raw_response=text
        )

    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Analysis response failed schema validation: {e.error_count()} error(s)")
        raise ResponseSchemaError(
            "Analysis response does not match the expected schema",
            raw_response=text,
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    result.olasi_tanilar = rank_diagnoses(result.olasi_tanilar)
    return result
