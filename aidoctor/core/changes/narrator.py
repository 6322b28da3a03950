"""
Renders detected changes as the "recent changes" block of the briefing.
"""
from typing import Optional, Sequence

from aidoctor.config import ContextPolicy
from aidoctor.core.context.formatting import (
    NOT_AVAILABLE,
    PENDING_REPORT,
    fmt_time,
    imaging_title,
    lab_detail_lines,
    vital_lines,
)
from aidoctor.core.records.models import ChangeEvent, RecordType

NO_CHANGES = "Son konuşmadan bu yana yeni veri eklenmedi."


def _narrate(change: ChangeEvent, policy: ContextPolicy) -> str:
    time_label = fmt_time(change.timestamp, policy.display_timezone)
    data = change.data

    if change.type == RecordType.VITAL:
        lines = [f"✅ **Yeni Vital Bulgu Eklendi** ({time_label}):"]
        lines.extend(vital_lines(data))
        lines.append("  ⚠️ Önceki ölçümle karşılaştır ve yorumla!")
    elif change.type == RecordType.LAB:
        lines = [
            f"✅ **Yeni Lab Sonucu Eklendi** ({time_label}):",
            f"  - Test: {data.display_name}",
            f"  - Kategori: {data.category or NOT_AVAILABLE}",
            f"  - Durum: {data.status}",
        ]
        lines.extend(lab_detail_lines(data, range_label="Ref", alert=True, results_indent=None))
        if data.critical_parameters:
            names = ", ".join(p.name for p in data.critical_parameters)
            lines.append(f"  🚨 KRİTİK DEĞER: {names}")
        lines.append("  ⚠️ Bu sonucu önceki değerlerle karşılaştır ve klinik tabloyla ilişkilendir!")
    else:
        lines = [
            f"✅ **Yeni Görüntüleme Raporu Eklendi** ({time_label}):",
            f"  - Tür: {imaging_title(data)}",
            f"  - Durum: {data.status}",
            f"  - Bulgular: {data.findings or PENDING_REPORT}",
        ]
        if data.impression:
            lines.append(f"  - Radyolog Yorumu: {data.impression}")
        lines.append("  ⚠️ Bu bulguları klinik tabloyla korele et ve tanı açısından değerlendir!")

    return "\n".join(lines)


def render_recent_changes(changes: Sequence[ChangeEvent], policy: Optional[ContextPolicy] = None) -> str:
    """One block per change, in the order given (most recent first)."""
    policy = policy or ContextPolicy()
    if not changes:
        return NO_CHANGES
    return "\n".join(_narrate(change, policy) for change in changes)
