"""
Context Assembler

Builds the patient summary the assistant reads before every answer.

Each section has one explicit inclusion rule:
- Demographics: always
- Vitals, labs, imaging: only when at least one record exists; capped at
  the policy limit with a notice stating how many older records were left out
- Medical history: only when a history note exists

Records are rendered in the order the caller supplies them (newest first).
"""
from typing import List, Optional, Sequence

from aidoctor.config import ContextPolicy
from aidoctor.core.records.models import (
    Demographics,
    ImagingResult,
    LabResult,
    MedicalHistory,
    PatientContext,
    VitalSign,
)

from .formatting import (
    NOT_AVAILABLE,
    PENDING_REPORT,
    fmt_day_time,
    fmt_text,
    fmt_time,
    imaging_title,
    lab_detail_lines,
    render_bounded_list,
    vital_lines,
)

UNKNOWN = "Bilinmiyor"


def demographics_section(demographics: Demographics, policy: ContextPolicy) -> str:
    age = f"{demographics.age} yaşında" if demographics.age is not None else UNKNOWN
    return "\n".join([
        "## Temel Bilgiler:",
        f"- İsim: {fmt_text(demographics.name, UNKNOWN)}",
        f"- Yaş: {age}",
        f"- Cinsiyet: {fmt_text(demographics.gender, UNKNOWN)}",
        f"- Şikayet: {fmt_text(demographics.complaint, UNKNOWN)}",
        f"- Durum: {demographics.status or policy.default_status}",
        f"- Öncelik: {demographics.priority or policy.default_priority}",
    ])


def vitals_section(vitals: Sequence[VitalSign], policy: ContextPolicy) -> Optional[str]:
    if not vitals:
        return None

    tz = policy.display_timezone

    def format_vital(vital: VitalSign, index: int) -> str:
        label = "🆕 Son Ölçüm" if index == 0 else "Önceki Ölçüm"
        lines = [f"### {label} ({fmt_time(vital.recorded_at, tz)}):"]
        lines.extend(vital_lines(vital))
        if vital.notes:
            lines.append(f"  - Not: {vital.notes}")
        return "\n".join(lines)

    blocks = render_bounded_list(
        vitals, policy.vitals_cap, format_vital,
        lambda omitted: f"_Not: {omitted} eski ölçüm daha var._",
    )
    return "\n".join([f"## Vital Bulgular (Toplam {len(vitals)} ölçüm):", *blocks])


def labs_section(labs: Sequence[LabResult], policy: ContextPolicy) -> Optional[str]:
    if not labs:
        return None

    tz = policy.display_timezone

    def format_lab(lab: LabResult, index: int) -> str:
        lines = [
            f"### {index + 1}. {lab.display_name} ({fmt_day_time(lab.ordered_at, tz)}):",
            f"  - Kategori: {lab.category or NOT_AVAILABLE}",
            f"  - Durum: {lab.status}",
        ]
        lines.extend(lab_detail_lines(lab))
        if lab.notes:
            lines.append(f"  - Not: {lab.notes}")
        return "\n".join(lines)

    shown = min(len(labs), policy.labs_cap)
    blocks = render_bounded_list(
        labs, policy.labs_cap, format_lab,
        lambda omitted: f"_Not: {omitted} eski test sonucu daha var._",
    )
    return "\n".join([f"## Laboratuvar Sonuçları (Son {shown}/{len(labs)} test):", *blocks])


def imaging_section(imaging: Sequence[ImagingResult], policy: ContextPolicy) -> Optional[str]:
    if not imaging:
        return None

    tz = policy.display_timezone

    def format_imaging(img: ImagingResult, index: int) -> str:
        lines = [
            f"### {index + 1}. {imaging_title(img)} ({fmt_day_time(img.ordered_at, tz)}):",
            f"  - Durum: {img.status}",
            f"  - Bulgular: {img.findings or PENDING_REPORT}",
        ]
        if img.impression:
            lines.append(f"  - Radyolog Yorumu: {img.impression}")
        if img.technique:
            lines.append(f"  - Teknik: {img.technique}")
        if img.radiologist:
            lines.append(f"  - Radyolog: {img.radiologist}")
        return "\n".join(lines)

    shown = min(len(imaging), policy.imaging_cap)
    blocks = render_bounded_list(
        imaging, policy.imaging_cap, format_imaging,
        lambda omitted: f"_Not: {omitted} eski tetkik daha var._",
    )
    return "\n".join([f"## Görüntüleme Sonuçları (Son {shown}/{len(imaging)} tetkik):", *blocks])


def history_section(history: Optional[MedicalHistory]) -> Optional[str]:
    if history is None:
        return None
    return "\n".join([
        "## Tıbbi Geçmiş:",
        f"  - Alerjiler: {fmt_text(history.allergies, 'Bilinen yok')}",
        f"  - Kronik Hastalıklar: {fmt_text(history.chronic_diseases, 'Yok')}",
        f"  - Kullandığı İlaçlar: {fmt_text(history.current_medications, 'Yok')}",
        f"  - Geçirilmiş Ameliyatlar: {fmt_text(history.surgical_history, 'Yok')}",
        f"  - Aile Öyküsü: {fmt_text(history.family_history, UNKNOWN)}",
        f"  - Sosyal Öykü: {fmt_text(history.social_history, UNKNOWN)}",
        f"  - Sigara: {'Evet' if history.smoking else 'Hayır'}",
        f"  - Alkol: {'Evet' if history.alcohol else 'Hayır'}",
    ])


def build_context(
    demographics: Demographics,
    vitals: Sequence[VitalSign] = (),
    labs: Sequence[LabResult] = (),
    imaging: Sequence[ImagingResult] = (),
    history: Optional[MedicalHistory] = None,
    policy: Optional[ContextPolicy] = None,
) -> str:
    """
    Assemble the textual patient context.

    Args:
        demographics: Patient header fields
        vitals: Vital sign sets, newest first
        labs: Lab results, newest first by ordered_at
        imaging: Imaging results, newest first by ordered_at
        history: Current medical history note, if any
        policy: Caps, defaults and display timezone

    Returns:
        Sections separated by blank lines; absent categories add nothing
    """
    policy = policy or ContextPolicy()
    sections: List[Optional[str]] = [
        demographics_section(demographics, policy),
        vitals_section(vitals, policy),
        labs_section(labs, policy),
        imaging_section(imaging, policy),
        history_section(history),
    ]
    return "\n\n".join(section for section in sections if section)


def build_patient_context(context: PatientContext, policy: Optional[ContextPolicy] = None) -> str:
    """``build_context`` over an assembled PatientContext."""
    return build_context(
        context.demographics,
        context.records.vitals,
        context.records.labs,
        context.records.imaging,
        context.history,
        policy,
    )
