"""
Application services: persistence plus the chat and analysis workflows.
"""
from .repository import InMemoryPatientRepository, PatientRepository
from .context_loader import load_patient_context
from .chat import ChatExchange, ChatService
from .analysis import AnalysisService

__all__ = [
    "InMemoryPatientRepository",
    "PatientRepository",
    "load_patient_context",
    "ChatExchange",
    "ChatService",
    "AnalysisService",
]
