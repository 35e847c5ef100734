"""
Database Schemas

Clinic domain models.
Each collection (doctors, patients, consultations) is persisted as a list of
these models; settings is a single document.

Models ending in "Fields" are what an edit form captures for a new record;
the identified model adds the keys the application assigns.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from dates import parse_local_date
from vitals import calculate_bmi


def new_id() -> str:
    return str(uuid.uuid4())


def _upper(value):
    # Clinic convention: captured free text is stored in capitals
    if isinstance(value, str):
        return value.upper()
    return value


def _local_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    return parse_local_date(str(value)).isoformat()


class Gender(str, Enum):
    MALE = "Masculino"
    FEMALE = "Femenino"
    OTHER = "Otro"


class Route(str, Enum):
    ORAL = "ORAL"
    INTRAMUSCULAR = "INTRAMUSCULAR"
    INTRAVENOUS = "INTRAVENOSA"
    TOPICAL = "TÓPICA"
    SUBLINGUAL = "SUBLINGUAL"
    OPHTHALMIC = "OFTÁLMICA"
    OTIC = "ÓTICA"
    NASAL = "NASAL"
    VAGINAL = "VAGINAL"
    RECTAL = "RECTAL"


# Doctors

class DoctorFields(BaseModel):
    name: str = Field(..., min_length=1, description="Doctor's full name")
    professional_license: str = Field("", description="Professional license number")
    university: str = Field("", description="Granting university")
    continuing_education: Optional[str] = Field(None, description="Diplomas and courses")
    has_specialty: bool = Field(False, description="Whether the doctor holds a specialty")
    specialty_name: Optional[str] = None
    specialty_license: Optional[str] = None
    password: Optional[str] = Field(None, description="Local access password, compared as entered")

    @field_validator(
        "name", "professional_license", "university", "continuing_education",
        "specialty_name", "specialty_license", mode="before",
    )
    @classmethod
    def _capitals(cls, value):
        return _upper(value)

    @model_validator(mode="after")
    def _drop_specialty(self):
        if not self.has_specialty:
            self.specialty_name = None
            self.specialty_license = None
        return self


class Doctor(DoctorFields):
    id: str


# Patients

class PatientFields(BaseModel):
    name: str = Field(..., min_length=1, description="Patient's full name")
    dob: str = Field(..., description="Date of Birth YYYY-MM-DD")
    gender: Gender
    contact: str = Field("", description="Phone or other contact")
    allergies: Optional[str] = None
    family_history: Optional[str] = None
    pathological_history: Optional[str] = None
    non_pathological_history: Optional[str] = None
    surgical_history: Optional[str] = None
    # Only kept for female patients
    gynecological_history: Optional[str] = None
    last_cytology: Optional[str] = Field(None, description="Last Papanicolaou YYYY-MM-DD")
    last_colposcopy: Optional[str] = Field(None, description="Last colposcopy YYYY-MM-DD")

    @field_validator(
        "name", "contact", "allergies", "family_history", "pathological_history",
        "non_pathological_history", "surgical_history", "gynecological_history",
        mode="before",
    )
    @classmethod
    def _capitals(cls, value):
        return _upper(value)

    @field_validator("dob", "last_cytology", "last_colposcopy", mode="before")
    @classmethod
    def _dates(cls, value):
        return _local_date(value)

    @model_validator(mode="after")
    def _gynecology_for_women_only(self):
        if self.gender != Gender.FEMALE:
            self.gynecological_history = None
            self.last_cytology = None
            self.last_colposcopy = None
        return self


class Patient(PatientFields):
    id: str
    doctor_id: str


# Consultations

class VitalSigns(BaseModel):
    systolic_bp: Optional[float] = Field(None, description="mmHg")
    diastolic_bp: Optional[float] = Field(None, description="mmHg")
    heart_rate: Optional[float] = Field(None, description="beats per minute")
    respiratory_rate: Optional[float] = Field(None, description="breaths per minute")
    temperature: Optional[float] = Field(None, description="°C")
    oxygen_saturation: Optional[float] = Field(None, description="%")
    glucose: Optional[float] = Field(None, description="mg/dL")
    weight: Optional[float] = Field(None, description="kg")
    height: Optional[float] = Field(None, description="m")
    bmi: Optional[str] = Field(None, description="Derived from weight and height")
    bmi_interpretation: Optional[str] = Field(None, description="Derived from weight and height")

    @model_validator(mode="after")
    def _derive_bmi(self):
        result = calculate_bmi(self.weight, self.height)
        self.bmi = result.value if result else None
        self.bmi_interpretation = result.interpretation if result else None
        return self

    def with_readings(self, **changes) -> "VitalSigns":
        """Copy with some readings replaced; BMI follows the new weight/height."""
        return VitalSigns.model_validate({**self.model_dump(), **changes})


class Medication(BaseModel):
    name: str = Field("", description="Drug name, usually from the catalog")
    indication: str = Field("", description="Dose and directions")
    route: Route = Route.ORAL

    @field_validator("name", "indication", mode="before")
    @classmethod
    def _capitals(cls, value):
        return _upper(value)


class Prescription(BaseModel):
    medications: List[Medication] = Field(default_factory=list)
    instructions: Optional[str] = Field(None, description="General instructions")

    @field_validator("instructions", mode="before")
    @classmethod
    def _capitals(cls, value):
        return _upper(value)

    @model_validator(mode="after")
    def _drop_blank_rows(self):
        self.medications = [m for m in self.medications if m.name.strip()]
        return self

    def is_empty(self) -> bool:
        return not self.medications and not (self.instructions or "").strip()


class UltrasoundReport(BaseModel):
    study_type: str = Field(..., min_length=1, description="e.g. OBSTETRIC, PELVIC")
    findings: Optional[str] = None
    impression: Optional[str] = None
    images: List[str] = Field(default_factory=list, description="Ordered base64 data URLs")

    @field_validator("study_type", "findings", "impression", mode="before")
    @classmethod
    def _capitals(cls, value):
        return _upper(value)


class ConsultationFields(BaseModel):
    patient_id: str
    visited_at: datetime = Field(default_factory=datetime.now, description="Date and time of the visit")
    reason: str = Field("", description="Reason for visit")
    vital_signs: Optional[VitalSigns] = None
    physical_exam: Optional[str] = None
    diagnosis: str = Field(..., description="Required")
    prescription: Prescription = Field(default_factory=Prescription)
    lab_studies: Optional[str] = Field(None, description="Lab and imaging studies")
    next_appointment: Optional[str] = Field(None, description="YYYY-MM-DD")
    cost: Optional[float] = Field(None, ge=0)
    ultrasound: Optional[UltrasoundReport] = None

    @field_validator("reason", "physical_exam", "diagnosis", "lab_studies", mode="before")
    @classmethod
    def _capitals(cls, value):
        return _upper(value)

    @field_validator("diagnosis")
    @classmethod
    def _diagnosis_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("diagnosis is required")
        return value

    @field_validator("next_appointment", mode="before")
    @classmethod
    def _dates(cls, value):
        return _local_date(value)

    @field_validator("visited_at")
    @classmethod
    def _local_time(cls, value: datetime) -> datetime:
        # stored as naive local time so visits always compare with each other
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value


class Consultation(ConsultationFields):
    id: str
    doctor_id: str


# Settings

class ClinicInfo(BaseModel):
    name: str
    address: str = ""
    phone: str = ""
    slogan: Optional[str] = None
    logo: Optional[str] = Field(None, description="base64 data URL")

    @field_validator("name", "address", "slogan", mode="before")
    @classmethod
    def _capitals(cls, value):
        return _upper(value)


class AppSettings(BaseModel):
    medications_url: str = Field("", description="Where the medication catalog is downloaded from")
    clinic_info: Optional[ClinicInfo] = None
