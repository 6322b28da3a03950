"""
Patient Repository

The persistence collaborator seen by the services. Implementations return
raw record mappings; the services normalize them. Clinical record lists
come back newest first; chat turns come back oldest first.

InMemoryPatientRepository keeps everything in process memory (replace
with a database-backed implementation in production).
"""
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from aidoctor.core.records import (
    normalize_chat_turn,
    normalize_demographics,
    normalize_history,
    normalize_imaging,
    normalize_lab,
    normalize_vital,
)
from aidoctor.core.records.timestamps import normalize_timestamp, sort_key
from aidoctor.utils import PatientNotFoundError, get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]


class PatientRepository(ABC):
    """Read/write access to one clinic's patients and their sub-records."""

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Optional[Record]: ...

    @abstractmethod
    async def list_vitals(self, patient_id: str) -> List[Record]: ...

    @abstractmethod
    async def list_labs(self, patient_id: str) -> List[Record]: ...

    @abstractmethod
    async def list_imaging(self, patient_id: str) -> List[Record]: ...

    @abstractmethod
    async def get_medical_history(self, patient_id: str) -> Optional[Record]: ...

    @abstractmethod
    async def list_chat_turns(self, patient_id: str, limit: Optional[int] = None) -> List[Record]:
        """Chat turns oldest first; with ``limit``, only the most recent ones."""

    @abstractmethod
    async def add_chat_turns(self, patient_id: str, turns: List[Record]) -> List[Record]: ...

    @abstractmethod
    async def clear_chat_turns(self, patient_id: str) -> int: ...

    @abstractmethod
    async def add_analysis(self, patient_id: str, analysis: Record) -> Record: ...

    @abstractmethod
    async def list_analyses(self, patient_id: str) -> List[Record]: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _newest_first(records: List[Record], field: str) -> List[Record]:
    return sorted(records, key=lambda r: sort_key(normalize_timestamp(r.get(field))), reverse=True)


class InMemoryPatientRepository(PatientRepository):
    """Dictionary-backed repository; records are validated on the way in."""

    def __init__(self):
        self._patients: Dict[str, Record] = {}
        self._vitals: Dict[str, List[Record]] = {}
        self._labs: Dict[str, List[Record]] = {}
        self._imaging: Dict[str, List[Record]] = {}
        self._history: Dict[str, Record] = {}
        self._chat: Dict[str, List[Record]] = {}
        self._analyses: Dict[str, List[Record]] = {}

    # ---- patients and clinical records ----

    async def create_patient(self, data: Mapping[str, Any]) -> Record:
        patient_id = str(data.get("id") or uuid.uuid4())
        demographics = normalize_demographics({**data, "id": patient_id})
        record = {
            "id": patient_id,
            "name": demographics.name,
            "age": demographics.age,
            "gender": demographics.gender,
            "complaint": demographics.complaint,
            "status": demographics.status,
            "priority": demographics.priority,
            "created_at": _now_iso(),
        }
        self._patients[patient_id] = record
        logger.info(f"Patient created: {patient_id}")
        return dict(record)

    def _require(self, patient_id: str) -> None:
        if patient_id not in self._patients:
            raise PatientNotFoundError(patient_id)

    async def get_patient(self, patient_id: str) -> Optional[Record]:
        patient = self._patients.get(patient_id)
        return dict(patient) if patient else None

    async def add_vital(self, patient_id: str, data: Mapping[str, Any]) -> Record:
        self._require(patient_id)
        raw = {"recorded_at": _now_iso(), **data, "id": str(uuid.uuid4()), "patient_id": patient_id}
        record = normalize_vital(raw).to_dict()
        self._vitals.setdefault(patient_id, []).append(record)
        return dict(record)

    async def add_lab(self, patient_id: str, data: Mapping[str, Any]) -> Record:
        self._require(patient_id)
        raw = {"ordered_at": _now_iso(), **data, "id": str(uuid.uuid4()), "patient_id": patient_id}
        # Normalizing fills parameter names, units, ranges and statuses
        record = normalize_lab(raw).to_dict()
        self._labs.setdefault(patient_id, []).append(record)
        return dict(record)

    async def add_imaging(self, patient_id: str, data: Mapping[str, Any]) -> Record:
        self._require(patient_id)
        raw = {"ordered_at": _now_iso(), **data, "id": str(uuid.uuid4()), "patient_id": patient_id}
        record = normalize_imaging(raw).to_dict()
        self._imaging.setdefault(patient_id, []).append(record)
        return dict(record)

    async def set_medical_history(self, patient_id: str, data: Mapping[str, Any]) -> Record:
        self._require(patient_id)
        record = normalize_history({**data, "patient_id": patient_id}).to_dict()
        record["updated_at"] = _now_iso()
        self._history[patient_id] = record
        return dict(record)

    async def list_vitals(self, patient_id: str) -> List[Record]:
        return _newest_first(self._vitals.get(patient_id, []), "recorded_at")

    async def list_labs(self, patient_id: str) -> List[Record]:
        return _newest_first(self._labs.get(patient_id, []), "ordered_at")

    async def list_imaging(self, patient_id: str) -> List[Record]:
        return _newest_first(self._imaging.get(patient_id, []), "ordered_at")

    async def get_medical_history(self, patient_id: str) -> Optional[Record]:
        history = self._history.get(patient_id)
        return dict(history) if history else None

    # ---- chat and analyses ----

    async def list_chat_turns(self, patient_id: str, limit: Optional[int] = None) -> List[Record]:
        turns = sorted(
            self._chat.get(patient_id, []),
            key=lambda t: sort_key(normalize_timestamp(t.get("created_at"))),
        )
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return [dict(t) for t in turns]

    async def add_chat_turns(self, patient_id: str, turns: List[Record]) -> List[Record]:
        self._require(patient_id)
        stored = []
        for turn in turns:
            record = normalize_chat_turn({**turn, "id": turn.get("id") or str(uuid.uuid4())}).to_dict()
            record["patient_id"] = patient_id
            stored.append(record)
        self._chat.setdefault(patient_id, []).extend(stored)
        return [dict(r) for r in stored]

    async def clear_chat_turns(self, patient_id: str) -> int:
        self._require(patient_id)
        removed = len(self._chat.pop(patient_id, []))
        return removed

    async def add_analysis(self, patient_id: str, analysis: Record) -> Record:
        self._require(patient_id)
        record = {"id": str(uuid.uuid4()), "patient_id": patient_id, **analysis}
        self._analyses.setdefault(patient_id, []).append(record)
        return dict(record)

    async def list_analyses(self, patient_id: str) -> List[Record]:
        return _newest_first(self._analyses.get(patient_id, []), "created_at")
