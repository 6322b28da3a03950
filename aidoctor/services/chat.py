"""
Chat Service

Runs one clinician ↔ assistant exchange for a patient:
load records and recent history → prepare the turn (window, cutoff,
changes, request) → call the completion service → store both turns.

Nothing is stored when the completion call fails, so a failed turn does
not advance the change-detection cutoff.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aidoctor.config import ContextPolicy
from aidoctor.core.llm import CompletionClient, CompletionOptions, prepare_turn
from aidoctor.core.llm.prompts import CHAT_PERSONA
from aidoctor.core.records import ChatRole, normalize_chat_turn
from aidoctor.utils import PatientNotFoundError, RecordValidationError, get_logger

from .context_loader import load_patient_context, normalize_stored
from .repository import PatientRepository

logger = get_logger(__name__)


@dataclass
class ChatExchange:
    """The stored user turn, the stored assistant reply and what was reported."""
    user_turn: Dict[str, Any]
    assistant_turn: Dict[str, Any]
    recent_changes: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_recent_changes(self) -> bool:
        return bool(self.recent_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_message": self.user_turn,
            "ai_message": self.assistant_turn,
            "has_recent_changes": self.has_recent_changes,
            "recent_changes": self.recent_changes,
        }


class ChatService:
    """Per-patient assistant conversation."""

    def __init__(
        self,
        repository: PatientRepository,
        client: CompletionClient,
        policy: Optional[ContextPolicy] = None,
        options: Optional[CompletionOptions] = None,
        serialize_turns: bool = True,
        preamble: Optional[str] = CHAT_PERSONA,
    ):
        """
        Args:
            repository: Patient data source and chat store
            client: Completion service client
            policy: Context caps, defaults and history window
            options: Generation settings for chat requests
            serialize_turns: Run at most one turn per patient at a time
            preamble: Assistant persona sent at the top of every turn
        """
        self.repository = repository
        self.client = client
        self.policy = policy or ContextPolicy()
        self.options = options or CompletionOptions()
        self.serialize_turns = serialize_turns
        self.preamble = preamble
        self._locks: Dict[str, asyncio.Lock] = {}
        # Turns holding or waiting for each lock; idle locks are dropped
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _turn_lock(self, patient_id: str):
        if not self.serialize_turns:
            yield
            return

        lock = self._locks.setdefault(patient_id, asyncio.Lock())
        self._lock_users[patient_id] = self._lock_users.get(patient_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[patient_id] -= 1
            if not self._lock_users[patient_id]:
                del self._lock_users[patient_id]
                del self._locks[patient_id]

    async def send_message(self, patient_id: str, message: str) -> ChatExchange:
        """
        Answer a clinician message about a patient.

        Raises:
            RecordValidationError: empty message
            PatientNotFoundError: unknown patient
            CompletionServiceError: the completion service failed
        """
        message = (message or "").strip()
        if not message:
            raise RecordValidationError("Mesaj gerekli", record_type="chat_message")

        async with self._turn_lock(patient_id):
            received_at = datetime.now(timezone.utc)
            context, history = await load_patient_context(
                self.repository, patient_id, history_limit=self.policy.history_window
            )

            prepared = prepare_turn(
                history,
                context,
                message,
                preamble=self.preamble,
                options=self.options,
                policy=self.policy,
            )
            logger.info(
                f"Chat turn for patient {patient_id}: {len(prepared.window)} history turns, "
                f"{len(prepared.changes)} new records since {prepared.cutoff.isoformat()}"
            )

            response = await self.client.complete(prepared.request)

            stored = await self.repository.add_chat_turns(patient_id, [
                {
                    "role": ChatRole.USER.value,
                    "content": message,
                    "created_at": received_at.isoformat(),
                },
                {
                    "role": ChatRole.ASSISTANT.value,
                    "content": response.text,
                    "created_at": datetime.now(timezone.utc).isoformat(),
                    "metadata": {
                        "model": response.model,
                        "tokens": response.total_tokens,
                        "has_recent_changes": bool(prepared.changes),
                        "recent_changes_count": len(prepared.changes),
                    },
                },
            ])

        return ChatExchange(
            user_turn=stored[0],
            assistant_turn=stored[1],
            recent_changes=[
                {"type": change.type.value, "timestamp": change.timestamp.isoformat()}
                for change in prepared.changes
            ],
        )

    async def get_history(self, patient_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Stored chat turns, oldest first."""
        if await self.repository.get_patient(patient_id) is None:
            raise PatientNotFoundError(patient_id)
        turns = await self.repository.list_chat_turns(patient_id, limit=limit)
        return [
            turn.to_dict()
            for turn in normalize_stored(turns, normalize_chat_turn, "chat turn", patient_id)
        ]

    async def clear_history(self, patient_id: str) -> int:
        """Delete the conversation; the next turn reports every dated record."""
        removed = await self.repository.clear_chat_turns(patient_id)
        logger.info(f"Chat history cleared for patient {patient_id}: {removed} turns")
        return removed
