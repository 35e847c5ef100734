"""
Pytest configuration for the entire test suite.

Every test gets its own in-memory store, so nothing touches MongoDB.
"""
from datetime import date

import pytest

from clinic import ClinicState
from database import MemoryStore
from schemas import ConsultationFields, DoctorFields, PatientFields


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clinic(store):
    state = ClinicState(store, fetcher=lambda url: [])
    state.load()
    return state


@pytest.fixture
def doctor(clinic):
    """A second doctor, logged in."""
    d = clinic.add_doctor(DoctorFields(name="Ana Torres", professional_license="123456",
                                       university="UNAM", password="secret"))
    clinic.select_doctor(d.id, "secret")
    return d


@pytest.fixture
def patient(clinic, doctor):
    return clinic.add_patient(PatientFields(name="Maria Lopez", dob="2000-01-01", gender="Femenino",
                                            contact="555-0101"))


@pytest.fixture
def make_consultation(clinic, patient):
    def _make(**overrides):
        data = {"patient_id": patient.id, "reason": "control", "diagnosis": "sano"}
        data.update(overrides)
        return clinic.add_consultation(ConsultationFields(**data))
    return _make


@pytest.fixture
def today():
    return date.today()
