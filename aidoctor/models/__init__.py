from .schemas import (
    HealthResponse,
    PatientCreate,
    VitalCreate,
    LabParameterInput,
    LabCreate,
    ImagingCreate,
    HistoryUpdate,
    ChatRequest,
    ChatResponse,
    ChatHistoryResponse,
    ClearHistoryResponse,
)

__all__ = [
    "HealthResponse",
    "PatientCreate",
    "VitalCreate",
    "LabParameterInput",
    "LabCreate",
    "ImagingCreate",
    "HistoryUpdate",
    "ChatRequest",
    "ChatResponse",
    "ChatHistoryResponse",
    "ClearHistoryResponse",
]
