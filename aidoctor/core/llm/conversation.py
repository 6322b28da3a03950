"""
Conversation Turn Builder

Combines the persona, the patient context, the recent-changes block and
the windowed chat history into one completion request.

Order of work for a turn (``prepare_turn``):
    window history → cutoff from that window → detect changes → compose
so that "what changed since we last spoke" is measured against the same
conversation the model is shown.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from aidoctor.config import ContextPolicy
from aidoctor.core.changes import detect_changes, last_assistant_cutoff, render_recent_changes
from aidoctor.core.context import build_patient_context
from aidoctor.core.records.models import ChangeEvent, ChatRole, ChatTurn, PatientContext
from aidoctor.core.records.timestamps import sort_key
from aidoctor.utils import get_logger

from .messages import ASSISTANT, SYSTEM, USER, CompletionMessage, CompletionOptions, CompletionRequest
from .prompts import CHANGES_SECTION_HEADER, CHAT_PERSONA, PATIENT_SECTION_HEADER

logger = get_logger(__name__)


@dataclass
class PreparedTurn:
    """A composed request plus what went into it."""
    request: CompletionRequest
    window: List[ChatTurn] = field(default_factory=list)
    cutoff: Optional[datetime] = None
    changes: List[ChangeEvent] = field(default_factory=list)


def window_history(history: Sequence[ChatTurn], window: int = 50) -> List[ChatTurn]:
    """The ``window`` most recent turns, oldest first."""
    if window <= 0:
        return []
    chronological = sorted(history, key=lambda turn: sort_key(turn.created_at))
    return chronological[-window:]


def build_briefing(
    context_text: Optional[str],
    changes_text: Optional[str],
    preamble: Optional[str] = CHAT_PERSONA,
) -> str:
    """System message: persona, then patient data, then recent changes."""
    parts = []
    if preamble:
        parts.append(preamble)
    if context_text:
        parts.append(f"{PATIENT_SECTION_HEADER}\n{context_text}")
    if changes_text:
        parts.append(f"{CHANGES_SECTION_HEADER}\n{changes_text}")
    return "\n\n".join(parts)


def build_turn(
    history: Sequence[ChatTurn],
    context: Optional[PatientContext],
    changes: Sequence[ChangeEvent],
    new_user_message: str,
    preamble: Optional[str] = CHAT_PERSONA,
    options: Optional[CompletionOptions] = None,
    policy: Optional[ContextPolicy] = None,
) -> CompletionRequest:
    """
    Compose the completion request for one user turn.

    Args:
        history: Stored chat turns (windowed again here, so passing the
                 full history is safe)
        context: Patient context; None leaves the patient section out
        changes: Detected changes; empty leaves the changes block out
        new_user_message: The clinician's new question, sent last
        preamble: Persona text; empty leaves it out
        options: Generation settings for this request
        policy: Context caps, defaults and history window

    Returns:
        CompletionRequest with system briefing, history and the new turn
    """
    policy = policy or ContextPolicy()

    context_text = build_patient_context(context, policy) if context is not None else None
    changes_text = render_recent_changes(changes, policy) if changes else None
    if not preamble or context_text is None:
        logger.warning(
            "Composing chat turn with partial briefing",
            extra={"has_preamble": bool(preamble), "has_context": context_text is not None},
        )

    messages = []
    briefing = build_briefing(context_text, changes_text, preamble)
    if briefing:
        messages.append(CompletionMessage(role=SYSTEM, content=briefing))

    for turn in window_history(history, policy.history_window):
        role = ASSISTANT if turn.role == ChatRole.ASSISTANT else USER
        messages.append(CompletionMessage(role=role, content=turn.content))

    messages.append(CompletionMessage(role=USER, content=new_user_message))
    return CompletionRequest(messages=messages, options=options or CompletionOptions())


def prepare_turn(
    history: Sequence[ChatTurn],
    context: PatientContext,
    new_user_message: str,
    preamble: Optional[str] = CHAT_PERSONA,
    options: Optional[CompletionOptions] = None,
    policy: Optional[ContextPolicy] = None,
) -> PreparedTurn:
    """Window the history, detect changes since the last answer, compose."""
    policy = policy or ContextPolicy()
    window = window_history(history, policy.history_window)
    cutoff = last_assistant_cutoff(window)
    changes = detect_changes(context.records, cutoff)

    request = build_turn(window, context, changes, new_user_message, preamble, options, policy)
    return PreparedTurn(request=request, window=window, cutoff=cutoff, changes=changes)
