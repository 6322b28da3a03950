"""
Formatting helpers shared by the context assembler and the change narrator.

Everything here is a pure function from a record (or value) to text.
"""
import json
from datetime import datetime, tzinfo
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from aidoctor.core.records.models import (
    ImagingResult,
    LabParameter,
    LabResult,
    ParameterStatus,
    VitalSign,
)
from aidoctor.core.records.timestamps import EPOCH

T = TypeVar("T")

NOT_AVAILABLE = "N/A"
UNKNOWN_TIME = "zaman bilinmiyor"
PENDING_REPORT = "Rapor bekleniyor"
GENERAL_BODY_PART = "Genel"

STATUS_MARKERS = {
    ParameterStatus.NORMAL: "✅",
    ParameterStatus.LOW: "⬇️",
    ParameterStatus.HIGH: "⬆️",
    ParameterStatus.CRITICAL_LOW: "🔻",
    ParameterStatus.CRITICAL_HIGH: "🔺",
}

# Louder markers for freshly added results
ALERT_MARKERS = {
    ParameterStatus.NORMAL: "✅",
    ParameterStatus.LOW: "⬇️🟡",
    ParameterStatus.HIGH: "⬆️🔴",
    ParameterStatus.CRITICAL_LOW: "🔻🚨",
    ParameterStatus.CRITICAL_HIGH: "🔺🚨",
}


def render_bounded_list(
    items: Sequence[T],
    cap: int,
    format_item: Callable[[T, int], str],
    omitted_notice: Callable[[int], str],
) -> List[str]:
    """
    Render at most ``cap`` items, then one notice line if any were left out.

    Args:
        items: Records in display order (newest first)
        cap: Maximum number of items to render
        format_item: Called with (item, index) for each shown item
        omitted_notice: Called with the number of omitted items (always > 0)

    Returns:
        Rendered blocks; empty when ``items`` is empty
    """
    cap = max(cap, 0)
    blocks = [format_item(item, index) for index, item in enumerate(items[:cap])]
    omitted = len(items) - cap
    if omitted > 0:
        blocks.append(omitted_notice(omitted))
    return blocks


def fmt_number(value: Optional[float]) -> str:
    """Render a measurement, dropping a trailing .0; None becomes N/A."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fmt_text(value: Optional[str], sentinel: str) -> str:
    return value if value else sentinel


def fmt_time(instant: Optional[datetime], tz: tzinfo) -> str:
    """Clock time, e.g. ``13:05``."""
    if instant is None or instant <= EPOCH:
        return UNKNOWN_TIME
    return instant.astimezone(tz).strftime("%H:%M")


def fmt_day_time(instant: Optional[datetime], tz: tzinfo) -> str:
    """Day, month and clock time, e.g. ``01.02 13:05``."""
    if instant is None or instant <= EPOCH:
        return UNKNOWN_TIME
    return instant.astimezone(tz).strftime("%d.%m %H:%M")


def fmt_ref_range(param: LabParameter) -> str:
    if param.ref_min is None or param.ref_max is None:
        return NOT_AVAILABLE
    return f"{fmt_number(param.ref_min)}-{fmt_number(param.ref_max)}"


def fmt_parameter(param: LabParameter, range_label: str = "Normal", alert: bool = False) -> str:
    marker = (ALERT_MARKERS if alert else STATUS_MARKERS)[param.status]
    unit = f" {param.unit}" if param.unit else ""
    return f"{marker} {param.name}: {fmt_number(param.value)}{unit} ({range_label}: {fmt_ref_range(param)})"


def fmt_results_blob(results: Any, indent: Optional[int] = 2) -> str:
    if isinstance(results, (dict, list)):
        return json.dumps(results, ensure_ascii=False, indent=indent, default=str)
    return str(results)


def vital_lines(vital: VitalSign, include_respiratory: bool = True) -> List[str]:
    """Measurement lines for one vital sign set."""
    lines = [
        f"  - Nabız: {fmt_number(vital.heart_rate)} bpm",
        f"  - Tansiyon: {fmt_number(vital.blood_pressure_systolic)}/"
        f"{fmt_number(vital.blood_pressure_diastolic)} mmHg",
        f"  - Ateş: {fmt_number(vital.temperature)}°C",
        f"  - SpO2: {fmt_number(vital.oxygen_saturation)}%",
    ]
    if include_respiratory:
        lines.append(f"  - Solunum: {fmt_number(vital.respiratory_rate)}/dk")
    return lines


def lab_detail_lines(
    lab: LabResult,
    range_label: str = "Normal",
    alert: bool = False,
    results_indent: Optional[int] = 2,
) -> List[str]:
    """Parameters (or the raw results blob when there are none)."""
    if lab.parameters:
        lines = ["  - Parametreler:"]
        lines.extend(f"    {fmt_parameter(p, range_label, alert)}" for p in lab.parameters)
        return lines
    if lab.results:
        label = "Sonuç" if alert else "Sonuçlar"
        return [f"  - {label}: {fmt_results_blob(lab.results, results_indent)}"]
    return []


def imaging_title(img: ImagingResult) -> str:
    return f"{img.imaging_type} - {img.body_part or GENERAL_BODY_PART}"
