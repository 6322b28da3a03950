"""
Clinical Record Types

Canonical, immutable shapes for the per-patient sub-records the assistant
reads: vital signs, lab results (with structured parameters), imaging
results and the medical history note, plus chat turns and the derived
change events.

The core only ever reads these. Status fields on labs/imaging may change
upstream, but a new read produces a new object.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .timestamps import EPOCH


class ParameterStatus(str, Enum):
    """Lab parameter value relative to its reference range."""
    NORMAL = "NORMAL"
    LOW = "LOW"
    HIGH = "HIGH"
    CRITICAL_LOW = "CRITICAL_LOW"
    CRITICAL_HIGH = "CRITICAL_HIGH"

    @property
    def is_critical(self) -> bool:
        return self in (ParameterStatus.CRITICAL_LOW, ParameterStatus.CRITICAL_HIGH)


class RecordType(str, Enum):
    """Record categories that take part in change detection."""
    VITAL = "vital"
    LAB = "lab"
    IMAGING = "imaging"


class ChatRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


@dataclass(frozen=True)
class Demographics:
    """Patient header shown at the top of every context."""
    name: str = ""
    age: Optional[int] = None
    gender: str = ""
    complaint: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None
    patient_id: Optional[str] = None


@dataclass(frozen=True)
class VitalSign:
    """One bedside measurement set."""
    patient_id: Optional[str]
    recorded_at: Optional[datetime]
    heart_rate: Optional[float] = None
    blood_pressure_systolic: Optional[float] = None
    blood_pressure_diastolic: Optional[float] = None
    temperature: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    respiratory_rate: Optional[float] = None
    notes: Optional[str] = None
    id: Optional[str] = None

    @property
    def observed_at(self) -> Optional[datetime]:
        return self.recorded_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "recorded_at": _iso(self.recorded_at),
            "heart_rate": self.heart_rate,
            "blood_pressure_systolic": self.blood_pressure_systolic,
            "blood_pressure_diastolic": self.blood_pressure_diastolic,
            "temperature": self.temperature,
            "oxygen_saturation": self.oxygen_saturation,
            "respiratory_rate": self.respiratory_rate,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class LabParameter:
    """A named numeric observation inside a lab panel."""
    key: str
    name: str
    value: Optional[float]
    unit: str = ""
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    status: ParameterStatus = ParameterStatus.NORMAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "ref_min": self.ref_min,
            "ref_max": self.ref_max,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class LabResult:
    """A lab order and, once resulted, its parameters."""
    patient_id: Optional[str]
    ordered_at: Optional[datetime]
    category: Optional[str] = None
    test_name: Optional[str] = None
    test_type: Optional[str] = None
    parameters: Tuple[LabParameter, ...] = ()
    # Free-form results for panels entered without structured parameters
    results: Union[Dict[str, Any], str, None] = None
    status: str = "PENDING"
    notes: Optional[str] = None
    resulted_at: Optional[datetime] = None
    id: Optional[str] = None

    @property
    def observed_at(self) -> Optional[datetime]:
        return self.ordered_at

    @property
    def display_name(self) -> str:
        return self.test_name or self.test_type or self.category or "Test"

    @property
    def critical_parameters(self) -> List[LabParameter]:
        return [p for p in self.parameters if p.status.is_critical]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "ordered_at": _iso(self.ordered_at),
            "category": self.category,
            "test_name": self.test_name,
            "test_type": self.test_type,
            "parameters": [p.to_dict() for p in self.parameters],
            "results": self.results,
            "status": self.status,
            "notes": self.notes,
            "resulted_at": _iso(self.resulted_at),
        }


@dataclass(frozen=True)
class ImagingResult:
    """A radiology order and its report."""
    patient_id: Optional[str]
    ordered_at: Optional[datetime]
    imaging_type: str = ""
    body_part: Optional[str] = None
    findings: Optional[str] = None
    impression: Optional[str] = None
    technique: Optional[str] = None
    radiologist: Optional[str] = None
    status: str = "PENDING"
    id: Optional[str] = None

    @property
    def observed_at(self) -> Optional[datetime]:
        return self.ordered_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "ordered_at": _iso(self.ordered_at),
            "imaging_type": self.imaging_type,
            "body_part": self.body_part,
            "findings": self.findings,
            "impression": self.impression,
            "technique": self.technique,
            "radiologist": self.radiologist,
            "status": self.status,
        }


@dataclass(frozen=True)
class MedicalHistory:
    """The patient's single current anamnesis note."""
    patient_id: Optional[str] = None
    allergies: Optional[str] = None
    chronic_diseases: Optional[str] = None
    current_medications: Optional[str] = None
    surgical_history: Optional[str] = None
    family_history: Optional[str] = None
    social_history: Optional[str] = None
    complaint_history: Optional[str] = None
    medical_history: Optional[str] = None
    smoking: bool = False
    alcohol: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "allergies": self.allergies,
            "chronic_diseases": self.chronic_diseases,
            "current_medications": self.current_medications,
            "surgical_history": self.surgical_history,
            "family_history": self.family_history,
            "social_history": self.social_history,
            "complaint_history": self.complaint_history,
            "medical_history": self.medical_history,
            "smoking": self.smoking,
            "alcohol": self.alcohol,
        }


ClinicalRecord = Union[VitalSign, LabResult, ImagingResult]


@dataclass(frozen=True)
class ChatTurn:
    """One message in the per-patient assistant conversation."""
    role: ChatRole
    content: str
    created_at: Optional[datetime] = EPOCH
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "created_at": _iso(self.created_at),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ChangeEvent:
    """A record that appeared after the assistant last spoke."""
    type: RecordType
    timestamp: datetime
    data: ClinicalRecord


@dataclass
class PatientRecords:
    """All sub-records of one patient, each list newest first."""
    vitals: List[VitalSign] = field(default_factory=list)
    labs: List[LabResult] = field(default_factory=list)
    imaging: List[ImagingResult] = field(default_factory=list)


@dataclass
class PatientContext:
    """Everything the assistant sees for one turn. Built, used, discarded."""
    demographics: Demographics
    records: PatientRecords = field(default_factory=PatientRecords)
    history: Optional[MedicalHistory] = None
    chat_window: List[ChatTurn] = field(default_factory=list)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
