"""
Clinical Records

Canonical record types, timestamp normalization and the lab
reference-range table.
"""
from .models import (
    ChangeEvent,
    ChatRole,
    ChatTurn,
    ClinicalRecord,
    Demographics,
    ImagingResult,
    LabParameter,
    LabResult,
    MedicalHistory,
    ParameterStatus,
    PatientContext,
    PatientRecords,
    RecordType,
    VitalSign,
)
from .timestamps import EPOCH, EpochSeconds, normalize_timestamp, is_newer
from .normalizer import (
    normalize_chat_turn,
    normalize_demographics,
    normalize_history,
    normalize_imaging,
    normalize_lab,
    normalize_many,
    normalize_vital,
)
from .reference_ranges import (
    REFERENCE_RANGES,
    build_parameter,
    get_all_categories,
    get_parameter_info,
    get_parameter_status,
)

__all__ = [
    "ChangeEvent",
    "ChatRole",
    "ChatTurn",
    "ClinicalRecord",
    "Demographics",
    "ImagingResult",
    "LabParameter",
    "LabResult",
    "MedicalHistory",
    "ParameterStatus",
    "PatientContext",
    "PatientRecords",
    "RecordType",
    "VitalSign",
    "EPOCH",
    "EpochSeconds",
    "normalize_timestamp",
    "is_newer",
    "normalize_chat_turn",
    "normalize_demographics",
    "normalize_history",
    "normalize_imaging",
    "normalize_lab",
    "normalize_many",
    "normalize_vital",
    "REFERENCE_RANGES",
    "build_parameter",
    "get_all_categories",
    "get_parameter_info",
    "get_parameter_status",
]
