"""
Tests for BMI calculation and the vitals model.
"""
import pytest

from schemas import VitalSigns
from vitals import calculate_bmi, classify_bmi


def test_bmi_examples():
    assert calculate_bmi(70, 1.75) == ("22.86", "Normal")
    assert calculate_bmi(100, 1.60) == ("39.06", "Obesidad")
    assert calculate_bmi(60, 1.5) == ("26.67", "Sobrepeso")
    assert calculate_bmi(45, 1.70).interpretation == "Bajo peso"


@pytest.mark.parametrize("value, expected", [
    (18.49, "Bajo peso"),
    (18.5, "Normal"),
    (24.99, "Normal"),
    (25, "Sobrepeso"),
    (29.99, "Sobrepeso"),
    (30, "Obesidad"),
])
def test_classification_boundaries(value, expected):
    assert classify_bmi(value) == expected


@pytest.mark.parametrize("weight, height", [
    (None, 1.7), (70, None), (0, 1.7), (70, 0), (-5, 1.7), ("", 1.7), ("abc", 1.7),
])
def test_no_bmi_for_bad_input(weight, height):
    assert calculate_bmi(weight, height) is None


def test_numeric_strings_are_accepted():
    assert calculate_bmi("70", "1.75").value == "22.86"


def test_vitals_store_bmi():
    v = VitalSigns(weight=60, height=1.5, heart_rate=72)
    assert v.bmi == "26.67"
    assert v.bmi_interpretation == "Sobrepeso"
    assert v.model_dump()["bmi"] == "26.67"


def test_vitals_bmi_follows_edits():
    v = VitalSigns(weight=60, height=1.5)
    heavier = v.with_readings(weight=100, height=1.6)
    assert heavier.bmi == "39.06"
    assert v.bmi == "26.67"
    assert v.with_readings(height=None).bmi is None


def test_vitals_ignore_submitted_bmi():
    v = VitalSigns.model_validate({"weight": 70, "height": 1.75, "bmi": "99.00", "bmi_interpretation": "x"})
    assert (v.bmi, v.bmi_interpretation) == ("22.86", "Normal")
    assert VitalSigns(bmi="20.00").bmi is None
