"""
AI-Doctor Clinical Assistant - FastAPI Application

Main application entry point with API endpoints for:
- Patient registration and clinical records (vitals, labs, imaging, history)
- Lab reference-range catalogue
- Per-patient assistant chat with recent-change awareness
- Structured diagnostic analysis
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aidoctor import __version__
from aidoctor.config import settings
from aidoctor.core.llm import CompletionClient, CompletionOptions
from aidoctor.core.records import get_all_categories
from aidoctor.models import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HealthResponse,
    HistoryUpdate,
    ImagingCreate,
    LabCreate,
    PatientCreate,
    VitalCreate,
)
from aidoctor.services import AnalysisService, ChatService, InMemoryPatientRepository
from aidoctor.utils import (
    AIDoctorError,
    CompletionServiceError,
    PatientNotFoundError,
    RecordValidationError,
    ResponseSchemaError,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging: startup → yield → shutdown."""
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    if not _completion_client.is_available:
        logger.warning("GEMINI_API_KEY is not set; chat and analysis requests will fail")
    logger.info("API ready to accept requests")
    yield
    logger.info("AI-Doctor API shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title="AI-Doctor Clinical Assistant API",
    description="Clinical context assembly, change-aware chat and diagnostic analysis for emergency patients",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Services (in-memory storage; replace with database in production) ----
START_TIME = datetime.now()

_repository = InMemoryPatientRepository()
_completion_client = CompletionClient(config=settings.completion_config())
_policy = settings.context_policy()

_chat_service = ChatService(
    repository=_repository,
    client=_completion_client,
    policy=_policy,
    options=CompletionOptions(max_tokens=settings.chat_max_tokens),
    serialize_turns=settings.serialize_turns,
)
_analysis_service = AnalysisService(
    repository=_repository,
    client=_completion_client,
    policy=_policy,
    options=CompletionOptions(max_tokens=settings.analysis_max_tokens),
)


def get_repository() -> InMemoryPatientRepository:
    return _repository


def get_chat_service() -> ChatService:
    return _chat_service


def get_analysis_service() -> AnalysisService:
    return _analysis_service


def get_completion_client() -> CompletionClient:
    return _completion_client


# ---- Error Mapping ----

_STATUS_CODES = {
    PatientNotFoundError: 404,
    RecordValidationError: 400,
    CompletionServiceError: 502,
    ResponseSchemaError: 502,
}


@app.exception_handler(AIDoctorError)
async def handle_aidoctor_error(request: Request, exc: AIDoctorError):
    status_code = _STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ---- API Endpoints ----

def _health(client: CompletionClient) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        completion_service=client.get_stats(),
    )


@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root(client: CompletionClient = Depends(get_completion_client)):
    """API root - health check."""
    return _health(client)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(client: CompletionClient = Depends(get_completion_client)):
    """Health check endpoint."""
    return _health(client)


@app.post("/api/v1/patients", status_code=201, tags=["Patients"])
async def create_patient(
    request: PatientCreate,
    repository: InMemoryPatientRepository = Depends(get_repository),
):
    """Register a patient."""
    return await repository.create_patient(request.model_dump(exclude_none=True))


@app.get("/api/v1/patients/{patient_id}", tags=["Patients"])
async def get_patient(patient_id: str, repository: InMemoryPatientRepository = Depends(get_repository)):
    """
    Get a patient with all clinical records.
    """
    patient = await repository.get_patient(patient_id)
    if patient is None:
        raise PatientNotFoundError(patient_id)

    return {
        **patient,
        "vitals": await repository.list_vitals(patient_id),
        "labs": await repository.list_labs(patient_id),
        "imaging": await repository.list_imaging(patient_id),
        "medical_history": await repository.get_medical_history(patient_id),
    }


@app.post("/api/v1/patients/{patient_id}/vitals", status_code=201, tags=["Records"])
async def add_vital(
    patient_id: str,
    request: VitalCreate,
    repository: InMemoryPatientRepository = Depends(get_repository),
):
    """Record a vital-signs measurement."""
    return await repository.add_vital(patient_id, request.model_dump(mode="json", exclude_none=True))


@app.post("/api/v1/patients/{patient_id}/labs", status_code=201, tags=["Records"])
async def add_lab(
    patient_id: str,
    request: LabCreate,
    repository: InMemoryPatientRepository = Depends(get_repository),
):
    """Record a lab result; parameter statuses come from the reference table."""
    return await repository.add_lab(patient_id, request.model_dump(mode="json", exclude_none=True))


@app.post("/api/v1/patients/{patient_id}/imaging", status_code=201, tags=["Records"])
async def add_imaging(
    patient_id: str,
    request: ImagingCreate,
    repository: InMemoryPatientRepository = Depends(get_repository),
):
    """Record an imaging study."""
    return await repository.add_imaging(patient_id, request.model_dump(mode="json", exclude_none=True))


@app.put("/api/v1/patients/{patient_id}/history", tags=["Records"])
async def set_medical_history(
    patient_id: str,
    request: HistoryUpdate,
    repository: InMemoryPatientRepository = Depends(get_repository),
):
    """Replace the patient's medical history."""
    return await repository.set_medical_history(patient_id, request.model_dump())


@app.get("/api/v1/labs/categories", tags=["Reference"])
async def list_lab_categories() -> Dict[str, List[Dict[str, Any]]]:
    """
    List lab categories and their parameters.
    """
    return {"categories": get_all_categories()}


# ---- Assistant Endpoints ----

@app.post("/api/v1/patients/{patient_id}/chat", response_model=ChatResponse, tags=["Assistant"])
async def send_chat_message(
    patient_id: str,
    request: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """
    Ask the assistant about a patient.

    The reply takes into account every record added since the assistant
    last answered.
    """
    exchange = await service.send_message(patient_id, request.message)
    return ChatResponse(**exchange.to_dict())


@app.get("/api/v1/patients/{patient_id}/chat", response_model=ChatHistoryResponse, tags=["Assistant"])
async def get_chat_history(patient_id: str, service: ChatService = Depends(get_chat_service)):
    """Conversation history, oldest first."""
    messages = await service.get_history(patient_id)
    return ChatHistoryResponse(patient_id=patient_id, messages=messages)


@app.delete("/api/v1/patients/{patient_id}/chat", response_model=ClearHistoryResponse, tags=["Assistant"])
async def clear_chat_history(patient_id: str, service: ChatService = Depends(get_chat_service)):
    """Delete the conversation history."""
    deleted = await service.clear_history(patient_id)
    return ClearHistoryResponse(patient_id=patient_id, deleted=deleted)


@app.post("/api/v1/patients/{patient_id}/analysis", status_code=201, tags=["Assistant"])
async def analyze_patient(patient_id: str, service: AnalysisService = Depends(get_analysis_service)):
    """
    Run a structured diagnostic analysis and store it.
    """
    return await service.analyze_patient(patient_id)


@app.get("/api/v1/patients/{patient_id}/analysis", tags=["Assistant"])
async def list_analyses(patient_id: str, service: AnalysisService = Depends(get_analysis_service)):
    """Stored analyses, newest first."""
    return {"patient_id": patient_id, "analyses": await service.list_analyses(patient_id)}


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
