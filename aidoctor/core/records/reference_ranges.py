"""
Lab Reference Ranges

Static reference-range table used to classify lab parameters. Each
category maps parameter keys to display name, unit, normal range and,
where one is clinically defined, critical limits.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .models import LabParameter, ParameterStatus

DEFAULT_CATEGORY = "BIOCHEMISTRY"


@dataclass(frozen=True)
class ReferenceRange:
    """Normal and critical limits for one lab parameter."""
    name: str
    unit: str
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    critical_low: Optional[float] = None
    critical_high: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "unit": self.unit,
            "ref_min": self.ref_min,
            "ref_max": self.ref_max,
            "critical_low": self.critical_low,
            "critical_high": self.critical_high,
        }


@dataclass(frozen=True)
class LabCategory:
    category: str
    display_name: str
    parameters: Dict[str, ReferenceRange]


REFERENCE_RANGES: Dict[str, LabCategory] = {
    "HEMOGRAM": LabCategory(
        category="HEMOGRAM",
        display_name="Hemogram (Tam Kan Sayımı)",
        parameters={
            "WBC": ReferenceRange("WBC (Beyaz Küre)", "10³/µL", 4.0, 10.0, 2.0, 20.0),
            "RBC": ReferenceRange("RBC (Kırmızı Küre)", "10⁶/µL", 4.2, 5.9, 3.0, 7.0),
            "HGB": ReferenceRange("Hemoglobin", "g/dL", 13.0, 17.0, 7.0, 20.0),
            "HCT": ReferenceRange("Hematokrit", "%", 40, 52, 20, 60),
            "MCV": ReferenceRange("MCV", "fL", 80, 100),
            "PLT": ReferenceRange("Trombosit", "10³/µL", 150, 400, 20, 1000),
            "NEU": ReferenceRange("Nötrofil", "%", 40, 70),
            "LYM": ReferenceRange("Lenfosit", "%", 20, 40),
        },
    ),
    "BIOCHEMISTRY": LabCategory(
        category="BIOCHEMISTRY",
        display_name="Biyokimya",
        parameters={
            "GLUCOSE": ReferenceRange("Glukoz (Açlık)", "mg/dL", 70, 100, 40, 400),
            "CREATININE": ReferenceRange("Kreatinin", "mg/dL", 0.7, 1.3, critical_high=5.0),
            "BUN": ReferenceRange("BUN (Üre)", "mg/dL", 7, 20, critical_high=100),
            "URIC_ACID": ReferenceRange("Ürik Asit", "mg/dL", 3.5, 7.2),
            "SODIUM": ReferenceRange("Sodyum", "mmol/L", 136, 145, 120, 160),
            "POTASSIUM": ReferenceRange("Potasyum", "mmol/L", 3.5, 5.1, 2.5, 6.5),
            "CALCIUM": ReferenceRange("Kalsiyum", "mg/dL", 8.5, 10.5, 6.0, 13.0),
            "TOTAL_PROTEIN": ReferenceRange("Total Protein", "g/dL", 6.0, 8.3),
            "ALBUMIN": ReferenceRange("Albumin", "g/dL", 3.5, 5.2),
            "AST": ReferenceRange("AST (SGOT)", "U/L", 0, 40, critical_high=500),
            "ALT": ReferenceRange("ALT (SGPT)", "U/L", 0, 41, critical_high=500),
            "ALP": ReferenceRange("ALP", "U/L", 30, 120),
            "TOTAL_BILIRUBIN": ReferenceRange("Total Bilirubin", "mg/dL", 0.1, 1.2, critical_high=15.0),
            "DIRECT_BILIRUBIN": ReferenceRange("Direkt Bilirubin", "mg/dL", 0.0, 0.3),
        },
    ),
    "CARDIAC": LabCategory(
        category="CARDIAC",
        display_name="Kardiyak Belirteçler",
        parameters={
            "TROPONIN_I": ReferenceRange("Troponin I", "ng/mL", 0, 0.04, critical_high=0.4),
            "CK_MB": ReferenceRange("CK-MB", "ng/mL", 0, 5, critical_high=25),
            "BNP": ReferenceRange("BNP", "pg/mL", 0, 100, critical_high=400),
        },
    ),
    "COAGULATION": LabCategory(
        category="COAGULATION",
        display_name="Koagülasyon",
        parameters={
            "PT": ReferenceRange("PT", "saniye", 11, 13.5, critical_high=30),
            "INR": ReferenceRange("INR", "", 0.8, 1.2, critical_high=5.0),
            "APTT": ReferenceRange("aPTT", "saniye", 25, 35, critical_high=100),
        },
    ),
    "INFECTION": LabCategory(
        category="INFECTION",
        display_name="Enfeksiyon Belirteçleri",
        parameters={
            "CRP": ReferenceRange("CRP", "mg/L", 0, 5, critical_high=200),
            "PROCALCITONIN": ReferenceRange("Prokalsitonin", "ng/mL", 0, 0.5, critical_high=10),
        },
    ),
}


def get_parameter_info(key: str, category: Optional[str] = DEFAULT_CATEGORY) -> Optional[ReferenceRange]:
    """Look up the reference range for a parameter, or None if unknown."""
    lab_category = REFERENCE_RANGES.get(category or DEFAULT_CATEGORY)
    if lab_category is None:
        return None
    return lab_category.parameters.get(key)


def get_parameter_status(
    key: str,
    value: Optional[float],
    category: Optional[str] = DEFAULT_CATEGORY
) -> ParameterStatus:
    """
    Classify a parameter value against its reference range.

    Critical limits are checked before the normal range. Unknown
    parameters, unknown categories and missing values are NORMAL.
    """
    info = get_parameter_info(key, category)
    if info is None or value is None:
        return ParameterStatus.NORMAL

    if info.critical_low is not None and value < info.critical_low:
        return ParameterStatus.CRITICAL_LOW
    if info.critical_high is not None and value > info.critical_high:
        return ParameterStatus.CRITICAL_HIGH
    if info.ref_min is not None and value < info.ref_min:
        return ParameterStatus.LOW
    if info.ref_max is not None and value > info.ref_max:
        return ParameterStatus.HIGH
    return ParameterStatus.NORMAL


def get_all_categories() -> List[Dict[str, Any]]:
    """Category listing for pickers: value, label and parameter keys."""
    return [
        {
            "value": key,
            "label": category.display_name,
            "parameters": list(category.parameters.keys()),
        }
        for key, category in REFERENCE_RANGES.items()
    ]


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_parameter(raw: Mapping[str, Any], category: Optional[str] = DEFAULT_CATEGORY) -> LabParameter:
    """
    Build a LabParameter from a raw mapping, filling name, unit and range
    from the reference table when the caller left them out.

    A stored ``status`` wins over the computed one.
    """
    key = str(raw.get("key") or raw.get("name") or "")
    value = _to_float(raw.get("value"))
    info = get_parameter_info(key, category)

    ref_min = _to_float(raw.get("refMin", raw.get("ref_min")))
    ref_max = _to_float(raw.get("refMax", raw.get("ref_max")))
    if ref_min is None and info is not None:
        ref_min = info.ref_min
    if ref_max is None and info is not None:
        ref_max = info.ref_max

    stored_status = raw.get("status")
    if stored_status:
        status = ParameterStatus(str(stored_status).upper())
    else:
        status = get_parameter_status(key, value, category)

    return LabParameter(
        key=key,
        name=raw.get("name") or (info.name if info else key),
        value=value,
        unit=raw.get("unit") or (info.unit if info else ""),
        ref_min=ref_min,
        ref_max=ref_max,
        status=status,
    )
