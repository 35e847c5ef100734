"""
Application state

ClinicState owns every collection and the current session (authenticated
doctor and selected patient). All mutations go through it; each one replaces
the affected collection and saves it right away.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Tuple, TypeVar, Union

from database import CONSULTATIONS, DOCTORS, PATIENTS, SETTINGS
from medications import fetch_medications
from schemas import (
    AppSettings,
    ClinicInfo,
    Consultation,
    ConsultationFields,
    Doctor,
    DoctorFields,
    Patient,
    PatientFields,
    new_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DOCTOR = {
    "name": "MEDICO TITULAR",
    "professional_license": "0000000",
    "university": "SIN REGISTRO",
    "has_specialty": False,
    "password": "1234",
}

DEFAULT_SETTINGS = {
    "medications_url": "",
    "clinic_info": {
        "name": "CONSULTORIO MEDICO",
        "address": "DOMICILIO CONOCIDO",
        "phone": "",
        "slogan": "ULTRASONIDO MEDICO DIAGNOSTICO",
    },
}


# Errors

class ClinicError(Exception):
    """A refused action; message is meant to be shown to the user."""

    status_code = 400
    message = "Action not allowed."

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class AuthenticationFailed(ClinicError):
    status_code = 401
    message = "Contraseña incorrecta. Por favor, intente de nuevo."


class DoctorMismatch(ClinicError):
    status_code = 403
    message = "The patient belongs to another doctor."


class UnknownDoctor(ClinicError):
    status_code = 404
    message = "Doctor not found."


class UnknownPatient(ClinicError):
    status_code = 404
    message = "Patient not found."


class UnsupportedOperation(ClinicError):
    status_code = 405
    message = "Records cannot be deleted."


class NoActiveDoctor(ClinicError):
    status_code = 409
    message = "No doctor is logged in."


# Save requests coming from an edit form

@dataclass(frozen=True)
class NewRecord(Generic[T]):
    fields: T


@dataclass(frozen=True)
class ExistingRecord(Generic[T]):
    record: T


Draft = Union[NewRecord, ExistingRecord]


def migrate_patient_owners(records: List[dict], doctors) -> Tuple[List[dict], bool]:
    """
    Give every patient record without a doctor to the first doctor.

    Returns the (possibly new) list and whether anything changed. Records that
    already have a doctor are returned as they are.
    """
    if not records or not doctors:
        return records, False
    if all(r.get("doctor_id") for r in records):
        return records, False
    owner = doctors[0].id
    migrated = [r if r.get("doctor_id") else {**r, "doctor_id": owner} for r in records]
    return migrated, True


def _replace(items, record, keep=()):
    """
    New tuple with the item matching record.id replaced; None if there is no match.

    The replacement is validated again, so capture rules and derived vitals
    hold however the caller built it. Fields named in keep come from the
    stored item.
    """
    for index, current in enumerate(items):
        if current.id == record.id:
            data = {**record.model_dump(), **{k: getattr(current, k) for k in keep}}
            record = type(record).model_validate(data)
            return items[:index] + (record,) + items[index + 1:]
    return None


class ClinicState:
    def __init__(self, store, fetcher: Callable[[str], List[str]] = fetch_medications):
        self.store = store
        self.fetcher = fetcher
        self.doctors: Tuple[Doctor, ...] = ()
        self.patients: Tuple[Patient, ...] = ()
        self.consultations: Tuple[Consultation, ...] = ()
        self.settings = AppSettings()
        self.medications: List[str] = []
        self.current_doctor: Optional[Doctor] = None
        self.selected_patient: Optional[Patient] = None
        self._migration_done = False

    # Loading

    def load(self) -> None:
        """Read every collection from the store; run once when the app starts."""
        doctors = self.store.load(DOCTORS)
        if doctors:
            self.doctors = tuple(Doctor.model_validate(d) for d in doctors)
        else:
            logger.info("No doctors stored, creating the default profile")
            self._commit_doctors((Doctor(id=new_id(), **DEFAULT_DOCTOR),))

        settings = self.store.load(SETTINGS)
        if settings:
            self.settings = AppSettings.model_validate(settings)
        else:
            self.settings = AppSettings.model_validate(DEFAULT_SETTINGS)
            self.store.save(SETTINGS, self.settings.model_dump(mode="json"))

        records = self.run_migration(self.store.load(PATIENTS) or [])
        self.patients = tuple(Patient.model_validate(r) for r in records)
        self.consultations = tuple(
            Consultation.model_validate(c) for c in self.store.load(CONSULTATIONS) or []
        )
        self.refresh_medications()

    def run_migration(self, records: List[dict]) -> List[dict]:
        """Assign legacy patients to the first doctor; does nothing after the first call."""
        if self._migration_done:
            return records
        self._migration_done = True
        migrated, changed = migrate_patient_owners(records, self.doctors)
        if changed:
            logger.info("Running migration: assigning existing patients to doctor %s", self.doctors[0].id)
            self.store.save(PATIENTS, migrated)
        return migrated

    def refresh_medications(self) -> List[str]:
        self.medications = self.fetcher(self.settings.medications_url) if self.settings.medications_url else []
        return self.medications

    # Persistence

    def _commit_doctors(self, doctors):
        self.doctors = tuple(doctors)
        self.store.save(DOCTORS, [d.model_dump(mode="json") for d in self.doctors])

    def _commit_patients(self, patients):
        self.patients = tuple(patients)
        self.store.save(PATIENTS, [p.model_dump(mode="json") for p in self.patients])

    def _commit_consultations(self, consultations):
        self.consultations = tuple(consultations)
        self.store.save(CONSULTATIONS, [c.model_dump(mode="json") for c in self.consultations])

    # Lookups

    def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        return next((d for d in self.doctors if d.id == doctor_id), None)

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return next((p for p in self.patients if p.id == patient_id), None)

    def get_consultation(self, consultation_id: str) -> Optional[Consultation]:
        return next((c for c in self.consultations if c.id == consultation_id), None)

    def doctor_patients(self) -> List[Patient]:
        if self.current_doctor is None:
            return []
        return [p for p in self.patients if p.doctor_id == self.current_doctor.id]

    def doctor_consultations(self) -> List[Consultation]:
        if self.current_doctor is None:
            return []
        return [c for c in self.consultations if c.doctor_id == self.current_doctor.id]

    def patient_consultations(self, patient_id: str) -> List[Consultation]:
        return [c for c in self.consultations if c.patient_id == patient_id]

    # Doctors

    def add_doctor(self, fields: DoctorFields) -> Doctor:
        doctor = Doctor(id=new_id(), **fields.model_dump())
        self._commit_doctors(self.doctors + (doctor,))
        return doctor

    def update_doctor(self, doctor: Doctor) -> bool:
        doctors = _replace(self.doctors, doctor)
        if doctors is None:
            return False
        self._commit_doctors(doctors)
        if self.current_doctor is not None and self.current_doctor.id == doctor.id:
            self.current_doctor = self.get_doctor(doctor.id)
        return True

    def delete_doctor(self, doctor_id: str):
        raise UnsupportedOperation("Doctors cannot be deleted.")

    # Session

    def select_doctor(self, doctor_id: str, password: str) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        if doctor is None:
            raise UnknownDoctor()
        if doctor.password is None or doctor.password != password:
            logger.info("Failed login for doctor %s", doctor_id)
            raise AuthenticationFailed()
        if self.current_doctor is None or self.current_doctor.id != doctor.id:
            self.selected_patient = None
        self.current_doctor = doctor
        return doctor

    def switch_doctor(self) -> None:
        self.current_doctor = None
        self.selected_patient = None

    def select_patient(self, patient_id: str) -> bool:
        patient = self.get_patient(patient_id)
        if patient is None:
            return False
        self.selected_patient = patient
        return True

    def deselect_patient(self) -> None:
        self.selected_patient = None

    def _require_doctor(self, action: str) -> Doctor:
        if self.current_doctor is None:
            logger.error("Cannot %s without a selected doctor", action)
            raise NoActiveDoctor()
        return self.current_doctor

    # Patients

    def add_patient(self, fields: PatientFields) -> Patient:
        doctor = self._require_doctor("add patient")
        patient = Patient(id=new_id(), doctor_id=doctor.id, **fields.model_dump())
        self._commit_patients(self.patients + (patient,))
        return patient

    def update_patient(self, patient: Patient) -> bool:
        patients = _replace(self.patients, patient, keep=("doctor_id",))
        if patients is None:
            return False
        self._commit_patients(patients)
        if self.selected_patient is not None and self.selected_patient.id == patient.id:
            self.selected_patient = self.get_patient(patient.id)
        return True

    def save_patient(self, draft: Draft):
        if isinstance(draft, NewRecord):
            return self.add_patient(draft.fields)
        return self.update_patient(draft.record)

    def delete_patient(self, patient_id: str):
        raise UnsupportedOperation("Patients cannot be deleted.")

    # Consultations

    def add_consultation(self, fields: ConsultationFields) -> Consultation:
        doctor = self._require_doctor("add consultation")
        patient = self.get_patient(fields.patient_id)
        if patient is None:
            raise UnknownPatient()
        if patient.doctor_id != doctor.id:
            raise DoctorMismatch()
        consultation = Consultation(id=new_id(), doctor_id=patient.doctor_id, **fields.model_dump())
        self._commit_consultations(self.consultations + (consultation,))
        return consultation

    def update_consultation(self, consultation: Consultation) -> bool:
        consultations = _replace(
            self.consultations, consultation, keep=("patient_id", "doctor_id")
        )
        if consultations is None:
            return False
        self._commit_consultations(consultations)
        return True

    def save_consultation(self, draft: Draft):
        if isinstance(draft, NewRecord):
            return self.add_consultation(draft.fields)
        return self.update_consultation(draft.record)

    def delete_consultation(self, consultation_id: str):
        raise UnsupportedOperation("Consultations cannot be deleted.")

    # Settings

    def save_settings(self, settings: AppSettings, refresh: bool = True) -> AppSettings:
        url_changed = settings.medications_url != self.settings.medications_url
        self.settings = settings
        self.store.save(SETTINGS, settings.model_dump(mode="json"))
        if url_changed and refresh:
            self.refresh_medications()
        return settings

    @property
    def clinic_info(self) -> Optional[ClinicInfo]:
        return self.settings.clinic_info
