"""
Patient context loading shared by the chat and analysis services.

Stored records were validated when they were written; anything that still
fails normalization here is logged and left out, so a bad document never
blocks a clinician's question.
"""
import asyncio
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from aidoctor.core.records import (
    ChatTurn,
    Demographics,
    PatientContext,
    PatientRecords,
    normalize_chat_turn,
    normalize_demographics,
    normalize_history,
    normalize_imaging,
    normalize_lab,
    normalize_vital,
)
from aidoctor.utils import PatientNotFoundError, RecordValidationError, get_logger

from .repository import PatientRepository

logger = get_logger(__name__)


def normalize_stored(
    raws: Optional[Iterable[Mapping[str, Any]]],
    normalize: Callable[[Mapping[str, Any]], Any],
    record_type: str,
    patient_id: Optional[str] = None,
) -> List[Any]:
    """Normalize stored records in order, skipping any that are malformed."""
    normalized = []
    for raw in raws or []:
        try:
            normalized.append(normalize(raw))
        except RecordValidationError as e:
            logger.warning(
                f"Skipping malformed stored {record_type} {raw.get('id')}: {e.message}",
                extra={"patient_id": patient_id, "record_type": record_type},
            )
    return normalized


def _demographics(patient: Mapping[str, Any], patient_id: str) -> Demographics:
    try:
        return normalize_demographics(patient)
    except RecordValidationError as e:
        logger.warning(f"Ignoring malformed demographics for patient {patient_id}: {e.message}")
        return normalize_demographics({**patient, "age": None})


async def load_patient_context(
    repository: PatientRepository,
    patient_id: str,
    history_limit: Optional[int] = None,
) -> Tuple[PatientContext, List[ChatTurn]]:
    """
    Fetch a patient's records and chat history concurrently and normalize them.

    Args:
        repository: Where the records live
        patient_id: Patient identifier
        history_limit: How many recent chat turns to fetch; 0 skips the fetch

    Returns:
        (patient context, chat turns oldest first)

    Raises:
        PatientNotFoundError: the patient does not exist
    """
    if history_limit == 0:
        patient, vitals, labs, imaging, history = await asyncio.gather(
            repository.get_patient(patient_id),
            repository.list_vitals(patient_id),
            repository.list_labs(patient_id),
            repository.list_imaging(patient_id),
            repository.get_medical_history(patient_id),
        )
        raw_turns = []
    else:
        patient, vitals, labs, imaging, history, raw_turns = await asyncio.gather(
            repository.get_patient(patient_id),
            repository.list_vitals(patient_id),
            repository.list_labs(patient_id),
            repository.list_imaging(patient_id),
            repository.get_medical_history(patient_id),
            repository.list_chat_turns(patient_id, limit=history_limit),
        )

    if patient is None:
        raise PatientNotFoundError(patient_id)

    records = PatientRecords(
        vitals=normalize_stored(vitals, normalize_vital, "vital", patient_id),
        labs=normalize_stored(labs, normalize_lab, "lab", patient_id),
        imaging=normalize_stored(imaging, normalize_imaging, "imaging", patient_id),
    )
    context = PatientContext(
        demographics=_demographics(patient, patient_id),
        records=records,
        history=normalize_history(history),
        chat_window=normalize_stored(raw_turns, normalize_chat_turn, "chat turn", patient_id),
    )
    return context, context.chat_window
