"""
Embedded vital signs and BMI derivation.

A patient's vital signs are stored as a flat mapping keyed by the
members of :class:`VitalField`.  Values arrive from forms as strings
(``"154"``), from the synthesizer as numbers, or as the ``"Not Examined"``
sentinel when a measurement was skipped.  Height is in inches and weight
in pounds everywhere in the dashboard; the metric convention only
converts internally before applying the SI formula.
"""
from __future__ import annotations

import enum
import math
from typing import Any, Mapping, Optional

NOT_EXAMINED = "Not Examined"

INCH_TO_METRE = 0.0254
POUND_TO_KG = 0.453592
IMPERIAL_BMI_FACTOR = 703


class VitalField(str, enum.Enum):
    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"
    WEIGHT = "weight"
    HEIGHT = "height"
    BMI = "bmi"


class UnitSystem(str, enum.Enum):
    IMPERIAL = "imperial"
    METRIC = "metric"


def vital_value(vitals: Optional[Mapping[str, Any]], field: VitalField) -> Any:
    """Return the stored value for ``field`` or ``None`` when absent."""
    if not vitals:
        return None
    return vitals.get(VitalField(field).value)


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text or text == NOT_EXAMINED:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def calculate_bmi(height: Any, weight: Any, units: UnitSystem = UnitSystem.IMPERIAL) -> Optional[float]:
    """Body-mass index from height (in) and weight (lb), one decimal.

    Returns ``None`` when either value is missing or non-numeric, or when
    either is not positive.
    """
    h = _to_number(height)
    w = _to_number(weight)
    if h is None or w is None or h <= 0 or w <= 0:
        return None
    if UnitSystem(units) is UnitSystem.METRIC:
        metres = h * INCH_TO_METRE
        kilograms = w * POUND_TO_KG
        return round(kilograms / (metres * metres), 1)
    return round(w / (h * h) * IMPERIAL_BMI_FACTOR, 1)


def recompute_bmi(vitals: Optional[Mapping[str, Any]], units: UnitSystem = UnitSystem.IMPERIAL) -> dict:
    """Return a copy of ``vitals`` with BMI derived from height and weight.

    When BMI cannot be computed the previous value is kept untouched.
    """
    updated = dict(vitals or {})
    bmi = calculate_bmi(
        vital_value(updated, VitalField.HEIGHT),
        vital_value(updated, VitalField.WEIGHT),
        units,
    )
    if bmi is not None:
        updated[VitalField.BMI.value] = bmi
    return updated


def fill_not_examined(vitals: Optional[Mapping[str, Any]]) -> dict:
    """Mark every empty known vital as ``"Not Examined"``."""
    filled = dict(vitals or {})
    for field in VitalField:
        value = filled.get(field.value)
        if value is None or (isinstance(value, str) and not value.strip()):
            filled[field.value] = NOT_EXAMINED
    return filled


def normalize_vital_signs(vitals: Optional[Mapping[str, Any]], units: UnitSystem = UnitSystem.IMPERIAL) -> dict:
    """Prepare submitted vitals for storage.

    Unknown keys are dropped, empty values become the sentinel and BMI is
    derived when it was not supplied.
    """
    if not isinstance(vitals, Mapping):
        vitals = {}
    known = {f.value: vitals.get(f.value) for f in VitalField}
    filled = fill_not_examined(known)
    if filled[VitalField.BMI.value] == NOT_EXAMINED:
        filled = recompute_bmi(filled, units)
    return filled
