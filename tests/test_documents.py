"""
Tests for the printable prescription, ultrasound report and history.
"""
from datetime import date, datetime

from documents import render_patient_history, render_prescription, render_ultrasound_report
from schemas import ClinicInfo, Consultation, Doctor, Patient

CLINIC = ClinicInfo(name="ultramed", address="av. central 1", phone="961 000 0000", slogan="diagnostico")
DOCTOR = Doctor(id="d1", name="ana torres", professional_license="123", university="unam",
                has_specialty=True, specialty_name="ginecologia", specialty_license="999")
PATIENT = Patient(id="p1", doctor_id="d1", name="maria lopez", dob="2000-01-01", gender="Femenino",
                  allergies="penicilina", last_cytology="2025-06-01")


def _consultation(**extra):
    data = dict(id="c1", doctor_id="d1", patient_id="p1", visited_at=datetime(2026, 10, 19, 10, 30),
                reason="control", diagnosis="cervicitis",
                vital_signs={"weight": 60, "height": 1.5, "systolic_bp": 120, "diastolic_bp": 80},
                prescription={"medications": [{"name": "metronidazol", "indication": "1 c/12h 7 dias",
                                               "route": "VAGINAL"}],
                              "instructions": "abstinencia"},
                next_appointment="2026-11-02")
    data.update(extra)
    return Consultation(**data)


def test_prescription_text():
    text = render_prescription(PATIENT, DOCTOR, _consultation(), CLINIC)
    assert text.startswith("ULTRAMED\nDIAGNOSTICO")
    assert "DR(A). ANA TORRES" in text
    assert "ESPECIALIDAD: GINECOLOGIA CED. ESP. 999" in text
    assert "PACIENTE: MARIA LOPEZ  EDAD: 26 años  FECHA: 19/10/2026" in text
    assert "1. METRONIDAZOL, VAGINAL, 1 C/12H 7 DIAS" in text
    assert "INDICACIONES: ABSTINENCIA" in text
    assert "TA 120/80" in text
    assert "IMC 26.67 (Sobrepeso)" in text
    assert "PROXIMA CITA: 2026-11-02" in text


def test_prescription_without_clinic_info():
    text = render_prescription(PATIENT, DOCTOR, _consultation(), None)
    assert text.startswith("DR(A). ANA TORRES")


def test_ultrasound_report():
    assert render_ultrasound_report(PATIENT, DOCTOR, _consultation(), CLINIC) is None
    c = _consultation(ultrasound={"study_type": "pelvico", "findings": "utero normal",
                                  "impression": "sin alteraciones", "images": ["a", "b"]})
    text = render_ultrasound_report(PATIENT, DOCTOR, c, CLINIC)
    assert "ESTUDIO: PELVICO" in text
    assert "HALLAZGOS:\nUTERO NORMAL" in text
    assert "IMPRESION DIAGNOSTICA:\nSIN ALTERACIONES" in text
    assert "IMAGENES ANEXAS: 2" in text


def test_patient_history():
    older = _consultation(id="c0", visited_at=datetime(2025, 1, 5, 9, 0), diagnosis="faringitis")
    text = render_patient_history(PATIENT, DOCTOR, [older, _consultation()], CLINIC, today=date(2026, 10, 19))
    assert "HISTORIA CLINICA" in text
    assert "ALERGIAS: PENICILINA" in text
    assert "ULTIMO PAPANICOLAOU: 2025-06-01" in text
    assert "ANTECEDENTES QUIRURGICOS: NEGADO" in text
    assert "CONSULTAS (2)" in text
    assert text.index("DIAGNOSTICO: CERVICITIS") < text.index("DIAGNOSTICO: FARINGITIS")


def test_history_hides_gynecology_for_men():
    man = Patient.model_validate({**PATIENT.model_dump(), "gender": "Masculino", "name": "juan"})
    text = render_patient_history(man, DOCTOR, [], None, today=date(2026, 10, 19))
    assert "PAPANICOLAOU" not in text
    assert "CONSULTAS (0)" in text
