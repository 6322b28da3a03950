"""
Timestamp Normalization

Clinical records reach the core with observation times in several shapes:
ISO-8601 strings, document-store timestamp wire objects
(``{"seconds": ..., "nanoseconds": ...}``), native datetimes, or nothing at
all. ``normalize_timestamp`` maps each shape onto one canonical instant:
a timezone-aware UTC ``datetime``.

Absent timestamps become the epoch origin, so any real record is newer.
Unparsable timestamps become ``None`` (invalid), and an invalid instant is
never newer than anything.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from aidoctor.utils import get_logger

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class EpochSeconds:
    """Document-store timestamp: whole seconds plus a nanosecond remainder."""
    seconds: float
    nanoseconds: int = 0

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any]) -> "EpochSeconds":
        # Serialized Firestore timestamps use either plain or underscored keys
        seconds = raw.get("seconds", raw.get("_seconds"))
        nanos = raw.get("nanoseconds", raw.get("_nanoseconds")) or 0
        return cls(seconds=seconds, nanoseconds=int(nanos))

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc) + timedelta(
            microseconds=self.nanoseconds // 1000
        )


RawTimestamp = Union[None, str, int, float, date, datetime, EpochSeconds, Mapping[str, Any]]


def _is_epoch_wire(raw: Mapping[str, Any]) -> bool:
    seconds = raw.get("seconds", raw.get("_seconds"))
    return isinstance(seconds, (int, float)) and not isinstance(seconds, bool)


def _parse_iso(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_timestamp(raw: RawTimestamp) -> Optional[datetime]:
    """
    Normalize any supported timestamp shape to an aware UTC datetime.

    Args:
        raw: ISO string, datetime/date, EpochSeconds, epoch-seconds wire
             mapping, numeric epoch seconds, or None

    Returns:
        The canonical instant, ``EPOCH`` for absent input, or ``None`` when
        the value cannot be interpreted as a point in time
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return EPOCH

    try:
        if isinstance(raw, datetime):
            return _as_utc(raw)
        if isinstance(raw, date):
            return datetime.combine(raw, time.min, tzinfo=timezone.utc)
        if isinstance(raw, EpochSeconds):
            return raw.to_datetime()
        if isinstance(raw, Mapping):
            if not _is_epoch_wire(raw):
                raise ValueError("mapping without numeric seconds")
            return EpochSeconds.from_wire(raw).to_datetime()
        if isinstance(raw, bool):
            raise ValueError("boolean is not a timestamp")
        if isinstance(raw, (int, float)):
            return EpochSeconds(seconds=raw).to_datetime()
        if isinstance(raw, str):
            return _as_utc(_parse_iso(raw))
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.debug(f"Unparsable timestamp {raw!r}: {e}")
        return None

    logger.debug(f"Unsupported timestamp type {type(raw).__name__}")
    return None


def is_newer(candidate: Optional[datetime], cutoff: Optional[datetime]) -> bool:
    """True only when both instants are valid and ``candidate`` is strictly later."""
    if candidate is None or cutoff is None:
        return False
    return candidate > cutoff


def sort_key(instant: Optional[datetime]) -> datetime:
    """Ordering key that places invalid instants with the oldest records."""
    return instant if instant is not None else EPOCH
