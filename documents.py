"""
Printable documents

Plain-text bodies for the prescription, the ultrasound report and the full
clinical history. Layout and the print window are up to the client.
"""

from datetime import date
from typing import Iterable, List, Optional

from dates import display_age
from reports import newest_first
from schemas import ClinicInfo, Consultation, Doctor, Gender, Medication, Patient, Prescription


def _header(clinic: Optional[ClinicInfo], doctor: Doctor) -> List[str]:
    lines = []
    if clinic:
        lines.append(clinic.name)
        if clinic.slogan:
            lines.append(clinic.slogan)
        lines.extend(x for x in [clinic.address, clinic.phone and f"TEL. {clinic.phone}"] if x)
    lines.append(f"DR(A). {doctor.name}")
    lines.append(f"CED. PROF. {doctor.professional_license} - {doctor.university}")
    if doctor.has_specialty and doctor.specialty_name:
        specialty = f"ESPECIALIDAD: {doctor.specialty_name}"
        if doctor.specialty_license:
            specialty += f" CED. ESP. {doctor.specialty_license}"
        lines.append(specialty)
    if doctor.continuing_education:
        lines.append(doctor.continuing_education)
    return lines


def _patient_line(patient: Patient, when: date) -> str:
    age = display_age(patient.dob, when) or ""
    return f"PACIENTE: {patient.name}  EDAD: {age}  FECHA: {when.strftime('%d/%m/%Y')}"


def medication_line(m: Medication) -> str:
    return ", ".join(x for x in [m.name, m.route.value, m.indication] if x)


def prescription_lines(prescription: Prescription) -> List[str]:
    lines = [f"{i}. {medication_line(m)}" for i, m in enumerate(prescription.medications, 1)]
    if prescription.instructions:
        lines.append(f"INDICACIONES: {prescription.instructions}")
    return lines


def _vitals_line(c: Consultation) -> Optional[str]:
    v = c.vital_signs
    if v is None:
        return None
    parts = []
    if v.systolic_bp and v.diastolic_bp:
        parts.append(f"TA {v.systolic_bp:g}/{v.diastolic_bp:g}")
    for label, value in [("FC", v.heart_rate), ("FR", v.respiratory_rate), ("TEMP", v.temperature),
                         ("SAT", v.oxygen_saturation), ("GLU", v.glucose), ("PESO", v.weight),
                         ("TALLA", v.height)]:
        if value is not None:
            parts.append(f"{label} {value:g}")
    if v.bmi:
        parts.append(f"IMC {v.bmi} ({v.bmi_interpretation})")
    return "SIGNOS VITALES: " + ", ".join(parts) if parts else None


def render_prescription(patient: Patient, doctor: Doctor, consultation: Consultation,
                        clinic: Optional[ClinicInfo] = None) -> str:
    lines = _header(clinic, doctor)
    lines.append("")
    lines.append(_patient_line(patient, consultation.visited_at.date()))
    vitals = _vitals_line(consultation)
    if vitals:
        lines.append(vitals)
    lines.append(f"DIAGNOSTICO: {consultation.diagnosis}")
    lines.append("")
    lines.append("RP/")
    lines.extend(prescription_lines(consultation.prescription))
    if consultation.next_appointment:
        lines.append(f"PROXIMA CITA: {consultation.next_appointment}")
    return "\n".join(lines)


def render_ultrasound_report(patient: Patient, doctor: Doctor, consultation: Consultation,
                             clinic: Optional[ClinicInfo] = None) -> Optional[str]:
    """None when the consultation carries no ultrasound study."""
    report = consultation.ultrasound
    if report is None:
        return None
    lines = _header(clinic, doctor)
    lines.append("")
    lines.append(_patient_line(patient, consultation.visited_at.date()))
    lines.append(f"ESTUDIO: {report.study_type}")
    if report.findings:
        lines.extend(["", "HALLAZGOS:", report.findings])
    if report.impression:
        lines.extend(["", "IMPRESION DIAGNOSTICA:", report.impression])
    if report.images:
        lines.append(f"IMAGENES ANEXAS: {len(report.images)}")
    return "\n".join(lines)


def render_patient_history(patient: Patient, doctor: Doctor, consultations: Iterable[Consultation],
                           clinic: Optional[ClinicInfo] = None, today: Optional[date] = None) -> str:
    today = today or date.today()
    lines = _header(clinic, doctor)
    lines += ["", "HISTORIA CLINICA", _patient_line(patient, today)]
    lines.append(f"FECHA DE NACIMIENTO: {patient.dob}  SEXO: {patient.gender.value}  CONTACTO: {patient.contact}")

    background = [
        ("ALERGIAS", patient.allergies),
        ("ANTECEDENTES HEREDOFAMILIARES", patient.family_history),
        ("ANTECEDENTES PATOLOGICOS", patient.pathological_history),
        ("ANTECEDENTES NO PATOLOGICOS", patient.non_pathological_history),
        ("ANTECEDENTES QUIRURGICOS", patient.surgical_history),
    ]
    if patient.gender == Gender.FEMALE:
        background += [
            ("ANTECEDENTES GINECO-OBSTETRICOS", patient.gynecological_history),
            ("ULTIMO PAPANICOLAOU", patient.last_cytology),
            ("ULTIMA COLPOSCOPIA", patient.last_colposcopy),
        ]
    for label, value in background:
        lines.append(f"{label}: {value or 'NEGADO'}")

    history = newest_first(consultations)
    lines += ["", f"CONSULTAS ({len(history)})"]
    for c in history:
        lines.append("")
        lines.append(f"{c.visited_at.strftime('%d/%m/%Y %H:%M')} - {c.reason}")
        vitals = _vitals_line(c)
        if vitals:
            lines.append(vitals)
        if c.physical_exam:
            lines.append(f"EXPLORACION FISICA: {c.physical_exam}")
        lines.append(f"DIAGNOSTICO: {c.diagnosis}")
        lines.extend(prescription_lines(c.prescription))
        if c.lab_studies:
            lines.append(f"ESTUDIOS: {c.lab_studies}")
        if c.ultrasound:
            lines.append(f"USG {c.ultrasound.study_type}: {c.ultrasound.impression or ''}".rstrip())
    return "\n".join(lines)
