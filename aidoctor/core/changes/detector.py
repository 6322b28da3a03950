"""
Change Detector

Finds the records that appeared since the assistant last answered, so the
next answer can address them without re-reading the whole chart.

Pure functions: the same records and cutoff always give the same events
in the same order.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from aidoctor.core.records.models import (
    ChangeEvent,
    ChatRole,
    ChatTurn,
    ClinicalRecord,
    PatientRecords,
    RecordType,
)
from aidoctor.core.records.timestamps import EPOCH, RawTimestamp, is_newer, normalize_timestamp


def last_assistant_cutoff(history: Sequence[ChatTurn]) -> datetime:
    """
    Timestamp of the latest assistant turn in ``history``.

    Pass the same windowed history the model will see. Returns the epoch
    origin when the assistant has not spoken yet, so the first turn
    surfaces every existing record.
    """
    cutoff = None
    for turn in history:
        if turn.role != ChatRole.ASSISTANT or turn.created_at is None:
            continue
        if cutoff is None or turn.created_at >= cutoff:
            cutoff = turn.created_at
    return cutoff if cutoff is not None else EPOCH


def _tagged(records: PatientRecords) -> Iterable[Tuple[RecordType, ClinicalRecord]]:
    for vital in records.vitals:
        yield RecordType.VITAL, vital
    for lab in records.labs:
        yield RecordType.LAB, lab
    for img in records.imaging:
        yield RecordType.IMAGING, img


def detect_changes(records: PatientRecords, since: RawTimestamp) -> List[ChangeEvent]:
    """
    Collect every vital, lab and imaging record newer than ``since``.

    Args:
        records: Current records of the patient
        since: Cutoff in any shape ``normalize_timestamp`` accepts

    Returns:
        ChangeEvents, most recent first; equal timestamps keep input order
    """
    cutoff: Optional[datetime] = normalize_timestamp(since)

    changes = []
    for record_type, record in _tagged(records):
        observed_at = record.observed_at
        # Absent timestamps sit at the epoch and invalid ones are None; neither is news
        if observed_at is None or observed_at <= EPOCH:
            continue
        if is_newer(observed_at, cutoff):
            changes.append(ChangeEvent(type=record_type, timestamp=observed_at, data=record))

    # sorted() is stable, so ties stay in category-then-input order
    return sorted(changes, key=lambda change: change.timestamp, reverse=True)
