"""
Custom Exception Hierarchy

Typed failures raised by the clinical assistant core and its services.
Each carries a machine-readable code so the HTTP layer can tell
"the model was unreachable" apart from "the model answered but the
answer did not parse".
"""
from typing import Optional, Dict, Any


class AIDoctorError(Exception):
    """Base exception for all clinical assistant errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class CompletionServiceError(AIDoctorError):
    """The completion service failed, timed out or is not configured."""

    def __init__(
        self,
        message: str,
        model: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="COMPLETION_SERVICE_ERROR",
            details={"model": model, **(details or {})}
        )
        self.model = model


class ResponseSchemaError(AIDoctorError):
    """The completion service answered, but not with the expected structure."""

    def __init__(
        self,
        message: str,
        raw_response: str = "",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RESPONSE_SCHEMA_ERROR",
            details={"raw_response": raw_response[:500], **(details or {})}
        )
        self.raw_response = raw_response


class RecordValidationError(AIDoctorError):
    """A stored record could not be read into its canonical shape."""

    def __init__(
        self,
        message: str,
        record_type: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RECORD_VALIDATION_ERROR",
            details={"record_type": record_type, **(details or {})}
        )
        self.record_type = record_type


class PatientNotFoundError(AIDoctorError):
    """No patient exists under the requested id."""

    def __init__(self, patient_id: str):
        super().__init__(
            message=f"Patient not found: {patient_id}",
            code="PATIENT_NOT_FOUND",
            details={"patient_id": patient_id}
        )
        self.patient_id = patient_id
