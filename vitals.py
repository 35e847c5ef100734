"""
Derived vital signs
"""

from typing import NamedTuple, Optional, Union

Number = Union[int, float, str, None]

UNDERWEIGHT = "Bajo peso"
NORMAL = "Normal"
OVERWEIGHT = "Sobrepeso"
OBESITY = "Obesidad"


class BMIResult(NamedTuple):
    value: str
    interpretation: str


def _positive(value: Number) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def classify_bmi(bmi: float) -> str:
    if bmi < 18.5:
        return UNDERWEIGHT
    if bmi < 25:
        return NORMAL
    if bmi < 30:
        return OVERWEIGHT
    return OBESITY


def calculate_bmi(weight: Number, height: Number) -> Optional[BMIResult]:
    """BMI from weight in kg and height in metres; None unless both are positive."""
    kg = _positive(weight)
    metres = _positive(height)
    if kg is None or metres is None:
        return None
    bmi = kg / (metres * metres)
    return BMIResult(f"{bmi:.2f}", classify_bmi(bmi))
