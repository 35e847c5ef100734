"""
Read-only views over the doctor's patients and consultations.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from dates import age_in_years, parse_local_date
from schemas import Consultation, Gender, Patient

AGE_BRACKETS = (
    ("0-11", 0, 11),
    ("12-17", 12, 17),
    ("18-29", 18, 29),
    ("30-44", 30, 44),
    ("45-59", 45, 59),
    ("60+", 60, None),
)


def search_patients(patients: Iterable[Patient], query: str = "") -> List[Patient]:
    ordered = sorted(patients, key=lambda p: p.name.casefold())
    needle = (query or "").strip().casefold()
    if not needle:
        return ordered
    return [p for p in ordered if needle in p.name.casefold()]


def newest_first(consultations: Iterable[Consultation]) -> List[Consultation]:
    return sorted(consultations, key=lambda c: c.visited_at, reverse=True)


def patient_consultations(consultations: Iterable[Consultation], patient_id: str) -> List[Consultation]:
    return newest_first(c for c in consultations if c.patient_id == patient_id)


def latest_consultation(consultations: Iterable[Consultation], patient_id: str) -> Optional[Consultation]:
    history = patient_consultations(consultations, patient_id)
    return history[0] if history else None


def appointments_today(consultations: Iterable[Consultation], today: Optional[date] = None) -> List[Consultation]:
    today = today or date.today()
    return [
        c for c in consultations
        if c.next_appointment and parse_local_date(c.next_appointment) == today
    ]


def upcoming_appointments(consultations: Iterable[Consultation], today: Optional[date] = None) -> List[Consultation]:
    today = today or date.today()
    upcoming = [
        c for c in consultations
        if c.next_appointment and parse_local_date(c.next_appointment) >= today
    ]
    return sorted(upcoming, key=lambda c: parse_local_date(c.next_appointment))


def consultations_report(
    consultations: Iterable[Consultation],
    patients: Iterable[Patient],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, Any]:
    """Visits between start and end (inclusive, by local visit date) with their total cost."""
    names = {p.id: p.name for p in patients}
    rows = []
    for c in newest_first(consultations):
        day = c.visited_at.date()
        if start and day < start:
            continue
        if end and day > end:
            continue
        rows.append({
            "id": c.id,
            "patient_id": c.patient_id,
            "patient_name": names.get(c.patient_id, ""),
            "visited_at": c.visited_at.isoformat(),
            "reason": c.reason,
            "diagnosis": c.diagnosis,
            "cost": c.cost,
        })
    return {
        "count": len(rows),
        "total_cost": round(sum(r["cost"] or 0 for r in rows), 2),
        "consultations": rows,
    }


def age_bracket(age: int) -> str:
    for label, low, high in AGE_BRACKETS:
        if age >= low and (high is None or age <= high):
            return label
    return AGE_BRACKETS[-1][0]


def demographics(patients: Iterable[Patient], today: Optional[date] = None) -> Dict[str, Any]:
    patients = list(patients)
    ages = [age_in_years(p.dob, today) for p in patients]
    by_gender = Counter(p.gender.value for p in patients)
    by_age = Counter(age_bracket(a) for a in ages)
    return {
        "total": len(patients),
        "by_gender": {g.value: by_gender.get(g.value, 0) for g in Gender},
        "by_age": {label: by_age.get(label, 0) for label, _, _ in AGE_BRACKETS},
        "average_age": round(sum(ages) / len(ages), 1) if ages else None,
    }
