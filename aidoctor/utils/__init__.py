"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    AIDoctorError,
    CompletionServiceError,
    ResponseSchemaError,
    RecordValidationError,
    PatientNotFoundError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "AIDoctorError",
    "CompletionServiceError",
    "ResponseSchemaError",
    "RecordValidationError",
    "PatientNotFoundError",
]
