"""
Record Normalizer

Turns raw per-category records from the persistence layer into the
canonical dataclasses in ``models``. Stored documents use camelCase keys;
records created through this service use snake_case. Both are accepted.
"""
from typing import Any, Iterable, List, Mapping, Optional

from aidoctor.utils import RecordValidationError, get_logger

from .models import (
    ChatRole,
    ChatTurn,
    Demographics,
    ImagingResult,
    LabResult,
    MedicalHistory,
    VitalSign,
)
from .reference_ranges import DEFAULT_CATEGORY, build_parameter
from .timestamps import normalize_timestamp

logger = get_logger(__name__)

# Stored chat documents label assistant turns "AI"
_ROLE_ALIASES = {
    "USER": ChatRole.USER,
    "ASSISTANT": ChatRole.ASSISTANT,
    "AI": ChatRole.ASSISTANT,
}


def _get(raw: Mapping[str, Any], snake: str, camel: Optional[str] = None, default: Any = None) -> Any:
    if snake in raw:
        return raw[snake]
    if camel is not None and camel in raw:
        return raw[camel]
    return default


def _number(value: Any, field_name: str, record_type: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise RecordValidationError(
            f"{field_name} must be numeric", record_type=record_type, details={"field": field_name}
        )
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RecordValidationError(
            f"{field_name} must be numeric, got {value!r}",
            record_type=record_type,
            details={"field": field_name},
        )


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_demographics(raw: Mapping[str, Any]) -> Demographics:
    age = _get(raw, "age")
    try:
        age = int(age) if age not in (None, "") else None
    except (TypeError, ValueError):
        raise RecordValidationError(f"age must be an integer, got {age!r}", record_type="patient")

    return Demographics(
        name=_text(raw.get("name")) or "",
        age=age,
        gender=_text(raw.get("gender")) or "",
        complaint=_text(raw.get("complaint")) or "",
        status=_text(raw.get("status")),
        priority=_text(raw.get("priority")),
        patient_id=_text(_get(raw, "id", "patientId")),
    )


def normalize_vital(raw: Mapping[str, Any]) -> VitalSign:
    kind = "vital"
    return VitalSign(
        id=_get(raw, "id"),
        patient_id=_get(raw, "patient_id", "patientId"),
        recorded_at=normalize_timestamp(_get(raw, "recorded_at", "recordedAt")),
        heart_rate=_number(_get(raw, "heart_rate", "heartRate"), "heart_rate", kind),
        blood_pressure_systolic=_number(
            _get(raw, "blood_pressure_systolic", "bloodPressureSystolic"), "blood_pressure_systolic", kind
        ),
        blood_pressure_diastolic=_number(
            _get(raw, "blood_pressure_diastolic", "bloodPressureDiastolic"), "blood_pressure_diastolic", kind
        ),
        temperature=_number(raw.get("temperature"), "temperature", kind),
        oxygen_saturation=_number(_get(raw, "oxygen_saturation", "oxygenSaturation"), "oxygen_saturation", kind),
        respiratory_rate=_number(_get(raw, "respiratory_rate", "respiratoryRate"), "respiratory_rate", kind),
        notes=_text(raw.get("notes")),
    )


def normalize_lab(raw: Mapping[str, Any]) -> LabResult:
    category = _text(raw.get("category")) or DEFAULT_CATEGORY
    raw_parameters = raw.get("parameters") or []
    if not isinstance(raw_parameters, (list, tuple)):
        raise RecordValidationError("parameters must be a list", record_type="lab")

    parameters = []
    for item in raw_parameters:
        # Half-entered rows from the mobile form have no name or value yet
        if not isinstance(item, Mapping) or not (item.get("key") or item.get("name")):
            logger.debug(f"Skipping lab parameter row without key: {item!r}")
            continue
        if item.get("value") is None:
            logger.debug(f"Skipping lab parameter {item.get('key')!r} without value")
            continue
        try:
            parameters.append(build_parameter(item, category))
        except ValueError as e:
            raise RecordValidationError(
                f"Invalid lab parameter {item.get('key')!r}: {e}", record_type="lab"
            ) from e

    resulted_raw = _get(raw, "resulted_at", "resultedAt")
    return LabResult(
        id=_get(raw, "id"),
        patient_id=_get(raw, "patient_id", "patientId"),
        ordered_at=normalize_timestamp(_get(raw, "ordered_at", "orderedAt")),
        category=category,
        test_name=_text(_get(raw, "test_name", "testName")),
        test_type=_text(_get(raw, "test_type", "testType")),
        parameters=tuple(parameters),
        results=raw.get("results") or None,
        status=_text(raw.get("status")) or "PENDING",
        notes=_text(raw.get("notes")),
        resulted_at=normalize_timestamp(resulted_raw) if resulted_raw else None,
    )


def normalize_imaging(raw: Mapping[str, Any]) -> ImagingResult:
    return ImagingResult(
        id=_get(raw, "id"),
        patient_id=_get(raw, "patient_id", "patientId"),
        ordered_at=normalize_timestamp(_get(raw, "ordered_at", "orderedAt")),
        imaging_type=_text(_get(raw, "imaging_type", "imagingType")) or "",
        body_part=_text(_get(raw, "body_part", "bodyPart")),
        findings=_text(raw.get("findings")),
        impression=_text(raw.get("impression")),
        technique=_text(raw.get("technique")),
        radiologist=_text(raw.get("radiologist")),
        status=_text(raw.get("status")) or "PENDING",
    )


def normalize_history(raw: Optional[Mapping[str, Any]]) -> Optional[MedicalHistory]:
    if not raw:
        return None
    return MedicalHistory(
        patient_id=_get(raw, "patient_id", "patientId"),
        allergies=_text(raw.get("allergies")),
        chronic_diseases=_text(_get(raw, "chronic_diseases", "chronicDiseases")),
        current_medications=_text(_get(raw, "current_medications", "currentMedications")),
        surgical_history=_text(_get(raw, "surgical_history", "surgicalHistory")),
        family_history=_text(_get(raw, "family_history", "familyHistory")),
        social_history=_text(_get(raw, "social_history", "socialHistory")),
        complaint_history=_text(_get(raw, "complaint_history", "complaintHistory")),
        medical_history=_text(_get(raw, "medical_history", "medicalHistory")),
        smoking=bool(raw.get("smoking", False)),
        alcohol=bool(raw.get("alcohol", False)),
    )


def normalize_chat_turn(raw: Mapping[str, Any]) -> ChatTurn:
    role_raw = str(raw.get("role", "")).upper()
    role = _ROLE_ALIASES.get(role_raw)
    if role is None:
        raise RecordValidationError(f"Unknown chat role {raw.get('role')!r}", record_type="chat_turn")
    return ChatTurn(
        id=_get(raw, "id"),
        role=role,
        content=str(raw.get("content") or ""),
        created_at=normalize_timestamp(_get(raw, "created_at", "createdAt")),
        metadata=dict(raw.get("metadata") or {}),
    )


def normalize_many(raws: Optional[Iterable[Mapping[str, Any]]], normalize) -> List[Any]:
    """Apply a record normalizer to every item, preserving order."""
    return [normalize(raw) for raw in (raws or [])]
