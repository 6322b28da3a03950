"""
API request/response models.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

OrderStatus = Literal["PENDING", "COMPLETED", "REVIEWED"]


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    completion_service: Dict[str, Any] = Field(default_factory=dict)


# ---- Patients and records ----

class PatientCreate(BaseModel):
    """New emergency department patient."""
    name: str = Field(..., min_length=1)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    complaint: Optional[str] = Field(default=None, description="Presenting complaint")
    status: Optional[str] = Field(default=None, description="Triage status, e.g. DEĞERLENDİRME")
    priority: Optional[str] = Field(default=None, description="Triage priority, e.g. orta")


class VitalCreate(BaseModel):
    """One vital-signs measurement."""
    recorded_at: Optional[datetime] = Field(default=None, description="Defaults to now")
    heart_rate: Optional[float] = Field(default=None, ge=0, le=300, description="bpm")
    blood_pressure_systolic: Optional[float] = Field(default=None, ge=0, le=300, description="mmHg")
    blood_pressure_diastolic: Optional[float] = Field(default=None, ge=0, le=200, description="mmHg")
    temperature: Optional[float] = Field(default=None, ge=30, le=45, description="°C")
    oxygen_saturation: Optional[float] = Field(default=None, ge=0, le=100, description="SpO2 %")
    respiratory_rate: Optional[float] = Field(default=None, ge=0, le=100, description="breaths/min")
    notes: Optional[str] = None


class LabParameterInput(BaseModel):
    """One measured analyte; name, unit and range default from the reference table."""
    key: str
    value: Optional[float] = None
    name: Optional[str] = None
    unit: Optional[str] = None
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None


class LabCreate(BaseModel):
    """A laboratory order and its results."""
    ordered_at: Optional[datetime] = Field(default=None, description="Defaults to now")
    category: Optional[str] = Field(default=None, description="HEMOGRAM, BIOCHEMISTRY, CARDIAC, ...")
    test_name: Optional[str] = None
    test_type: Optional[Literal["BLOOD", "URINE", "OTHER"]] = None
    parameters: List[LabParameterInput] = Field(default_factory=list)
    results: Optional[Dict[str, Any]] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    resulted_at: Optional[datetime] = None


class ImagingCreate(BaseModel):
    """An imaging order and its report."""
    ordered_at: Optional[datetime] = Field(default=None, description="Defaults to now")
    imaging_type: Literal["XRAY", "CT", "MRI", "ULTRASOUND", "OTHER"]
    body_part: Optional[str] = None
    findings: Optional[str] = None
    impression: Optional[str] = None
    technique: Optional[str] = None
    radiologist: Optional[str] = None
    status: Optional[OrderStatus] = None


class HistoryUpdate(BaseModel):
    """Free-text medical history; replaces the stored one."""
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


# ---- Assistant ----

class ChatRequest(BaseModel):
    """Clinician message to the assistant."""
    message: str = Field(..., description="Question about the patient")


class ChatResponse(BaseModel):
    user_message: Dict[str, Any]
    ai_message: Dict[str, Any]
    has_recent_changes: bool
    recent_changes: List[Dict[str, Any]] = Field(default_factory=list)


class ChatHistoryResponse(BaseModel):
    patient_id: str
    messages: List[Dict[str, Any]]


class ClearHistoryResponse(BaseModel):
    patient_id: str
    deleted: int
