import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

import reports
from clinic import ClinicError, ClinicState, ExistingRecord, NewRecord
from database import default_store
from dates import display_age
from documents import prescription_lines, render_patient_history, render_prescription, render_ultrasound_report
from medications import fetch_medications
from schemas import (
    AppSettings,
    Consultation,
    ConsultationFields,
    Doctor,
    DoctorFields,
    Medication,
    Patient,
    PatientFields,
    Prescription,
    VitalSigns,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Helpers

def get_clinic(request: Request) -> ClinicState:
    return request.app.state.clinic


def public_doctor(doctor: Optional[Doctor]) -> Optional[Dict[str, Any]]:
    if doctor is None:
        return None
    return doctor.model_dump(mode="json", exclude={"password"})


def serialize(model: Optional[BaseModel]) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json")


def patient_out(patient: Patient) -> Dict[str, Any]:
    data = serialize(patient)
    data["age"] = display_age(patient.dob)
    return data


def require_doctor(clinic: ClinicState) -> Doctor:
    if clinic.current_doctor is None:
        raise HTTPException(status_code=401, detail="Login required")
    return clinic.current_doctor


def own_patient(clinic: ClinicState, patient_id: str) -> Patient:
    doctor = require_doctor(clinic)
    patient = clinic.get_patient(patient_id)
    if patient is None or patient.doctor_id != doctor.id:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


def own_consultation(clinic: ClinicState, consultation_id: str) -> Consultation:
    doctor = require_doctor(clinic)
    consultation = clinic.get_consultation(consultation_id)
    if consultation is None or consultation.doctor_id != doctor.id:
        raise HTTPException(status_code=404, detail="Consultation not found")
    return consultation


# Request bodies

class LoginInput(BaseModel):
    doctor_id: str
    password: str


class PrescriptionInput(BaseModel):
    medications: List[Medication]
    instructions: Optional[str] = None


def create_app(store=None, fetcher=None) -> FastAPI:
    """Build the API around one ClinicState; store and fetcher default to the configured ones."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        clinic = app.state.clinic
        clinic.load()
        logger.info(
            "Loaded %d doctors, %d patients, %d consultations from %s store",
            len(clinic.doctors), len(clinic.patients), len(clinic.consultations), clinic.store.name,
        )
        yield

    clinic = ClinicState(store if store is not None else default_store(), fetcher or fetch_medications)

    app = FastAPI(title="Clinic Records API", lifespan=lifespan)
    app.state.clinic = clinic

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ClinicError)
    async def clinic_error(request: Request, exc: ClinicError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.get("/")
    async def root():
        return {"message": "Clinic Records Backend running"}

    @app.get("/test")
    async def test_database(clinic: ClinicState = Depends(get_clinic)):
        resp = {
            "backend": "✅ Running",
            "store": clinic.store.name,
            "collections": [],
            "doctors": len(clinic.doctors),
            "patients": len(clinic.patients),
            "consultations": len(clinic.consultations),
        }
        try:
            resp["collections"] = clinic.store.keys()
        except Exception as e:
            resp["store"] = f"⚠️ {clinic.store.name} error: {str(e)[:60]}"
        resp["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
        resp["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
        return resp

    @app.get("/schema")
    async def get_schema():
        return {
            "doctor": Doctor.model_json_schema(),
            "patient": Patient.model_json_schema(),
            "consultation": Consultation.model_json_schema(),
            "settings": AppSettings.model_json_schema(),
        }

    # Doctors

    @app.get("/doctors")
    async def list_doctors(clinic: ClinicState = Depends(get_clinic)):
        return [public_doctor(d) for d in clinic.doctors]

    @app.post("/doctors", status_code=201)
    async def create_doctor(payload: DoctorFields, clinic: ClinicState = Depends(get_clinic)):
        return public_doctor(clinic.add_doctor(payload))

    @app.put("/doctors/{doctor_id}")
    async def update_doctor(doctor_id: str, payload: DoctorFields, clinic: ClinicState = Depends(get_clinic)):
        current = clinic.get_doctor(doctor_id)
        if current is None:
            raise HTTPException(status_code=404, detail="Doctor not found")
        data = payload.model_dump()
        # listings never expose the password, so an omitted one means "unchanged"
        if "password" not in payload.model_fields_set:
            data["password"] = current.password
        clinic.update_doctor(Doctor(id=doctor_id, **data))
        return public_doctor(clinic.get_doctor(doctor_id))

    @app.delete("/doctors/{doctor_id}")
    async def delete_doctor(doctor_id: str, clinic: ClinicState = Depends(get_clinic)):
        clinic.delete_doctor(doctor_id)

    # Session

    @app.get("/session")
    async def get_session(clinic: ClinicState = Depends(get_clinic)):
        return {
            "doctor": public_doctor(clinic.current_doctor),
            "patient": serialize(clinic.selected_patient),
        }

    @app.post("/session/login")
    async def login(payload: LoginInput, clinic: ClinicState = Depends(get_clinic)):
        return public_doctor(clinic.select_doctor(payload.doctor_id, payload.password))

    @app.post("/session/logout")
    async def logout(clinic: ClinicState = Depends(get_clinic)):
        clinic.switch_doctor()
        return {"doctor": None, "patient": None}

    @app.post("/session/patient/{patient_id}")
    async def select_patient(patient_id: str, clinic: ClinicState = Depends(get_clinic)):
        own_patient(clinic, patient_id)
        clinic.select_patient(patient_id)
        return patient_out(clinic.selected_patient)

    @app.delete("/session/patient")
    async def back_to_list(clinic: ClinicState = Depends(get_clinic)):
        clinic.deselect_patient()
        return {"patient": None}

    # Patients

    @app.get("/patients")
    async def list_patients(search: Optional[str] = None, clinic: ClinicState = Depends(get_clinic)):
        require_doctor(clinic)
        return [patient_out(p) for p in reports.search_patients(clinic.doctor_patients(), search or "")]

    @app.post("/patients", status_code=201)
    async def create_patient(payload: PatientFields, clinic: ClinicState = Depends(get_clinic)):
        return patient_out(clinic.save_patient(NewRecord(payload)))

    @app.get("/patients/{patient_id}")
    async def get_patient(patient_id: str, clinic: ClinicState = Depends(get_clinic)):
        patient = own_patient(clinic, patient_id)
        data = patient_out(patient)
        data["latest_consultation"] = serialize(
            reports.latest_consultation(clinic.consultations, patient_id)
        )
        return data

    @app.put("/patients/{patient_id}")
    async def update_patient(patient_id: str, payload: PatientFields, clinic: ClinicState = Depends(get_clinic)):
        current = own_patient(clinic, patient_id)
        record = Patient(id=patient_id, doctor_id=current.doctor_id, **payload.model_dump())
        clinic.save_patient(ExistingRecord(record))
        return patient_out(clinic.get_patient(patient_id))

    @app.delete("/patients/{patient_id}")
    async def delete_patient(patient_id: str, clinic: ClinicState = Depends(get_clinic)):
        clinic.delete_patient(patient_id)

    @app.get("/patients/{patient_id}/consultations")
    async def list_patient_consultations(patient_id: str, clinic: ClinicState = Depends(get_clinic)):
        own_patient(clinic, patient_id)
        return [serialize(c) for c in reports.patient_consultations(clinic.consultations, patient_id)]

    @app.get("/patients/{patient_id}/history", response_class=PlainTextResponse)
    async def patient_history(patient_id: str, clinic: ClinicState = Depends(get_clinic)):
        patient = own_patient(clinic, patient_id)
        return render_patient_history(
            patient, clinic.current_doctor, clinic.patient_consultations(patient_id), clinic.clinic_info
        )

    # Consultations

    @app.post("/consultations", status_code=201)
    async def create_consultation(payload: ConsultationFields, clinic: ClinicState = Depends(get_clinic)):
        return serialize(clinic.save_consultation(NewRecord(payload)))

    @app.put("/consultations/{consultation_id}")
    async def update_consultation(
        consultation_id: str, payload: ConsultationFields, clinic: ClinicState = Depends(get_clinic)
    ):
        current = own_consultation(clinic, consultation_id)
        record = Consultation(
            **{**payload.model_dump(), "id": consultation_id,
               "patient_id": current.patient_id, "doctor_id": current.doctor_id}
        )
        clinic.save_consultation(ExistingRecord(record))
        return serialize(clinic.get_consultation(consultation_id))

    @app.delete("/consultations/{consultation_id}")
    async def delete_consultation(consultation_id: str, clinic: ClinicState = Depends(get_clinic)):
        clinic.delete_consultation(consultation_id)

    @app.get("/consultations/{consultation_id}/prescription", response_class=PlainTextResponse)
    async def print_prescription(consultation_id: str, clinic: ClinicState = Depends(get_clinic)):
        c = own_consultation(clinic, consultation_id)
        return render_prescription(clinic.get_patient(c.patient_id), clinic.current_doctor, c, clinic.clinic_info)

    @app.get("/consultations/{consultation_id}/ultrasound", response_class=PlainTextResponse)
    async def print_ultrasound(consultation_id: str, clinic: ClinicState = Depends(get_clinic)):
        c = own_consultation(clinic, consultation_id)
        text = render_ultrasound_report(clinic.get_patient(c.patient_id), clinic.current_doctor, c, clinic.clinic_info)
        if text is None:
            raise HTTPException(status_code=404, detail="Consultation has no ultrasound report")
        return text

    # Settings and catalog

    @app.get("/settings")
    async def get_settings(clinic: ClinicState = Depends(get_clinic)):
        return serialize(clinic.settings)

    @app.put("/settings")
    async def save_settings(payload: AppSettings, clinic: ClinicState = Depends(get_clinic)):
        url_changed = payload.medications_url != clinic.settings.medications_url
        clinic.save_settings(payload, refresh=False)
        if url_changed:
            # the download blocks, keep it off the event loop
            await run_in_threadpool(clinic.refresh_medications)
        return serialize(clinic.settings)

    @app.get("/medications")
    async def list_medications(clinic: ClinicState = Depends(get_clinic)):
        return clinic.medications

    # Form helpers

    @app.post("/vitals/bmi")
    async def vitals_preview(payload: VitalSigns):
        return serialize(payload)

    @app.post("/prescription/preview")
    async def prescription_preview(payload: PrescriptionInput):
        prescription = Prescription(medications=payload.medications, instructions=payload.instructions)
        lines = prescription_lines(prescription)
        return {"preview": "\n".join(lines), "count": len(prescription.medications)}

    # Reports

    @app.get("/reports/appointments/today")
    async def report_today(clinic: ClinicState = Depends(get_clinic)):
        require_doctor(clinic)
        return [serialize(c) for c in reports.appointments_today(clinic.doctor_consultations())]

    @app.get("/reports/appointments/upcoming")
    async def report_upcoming(clinic: ClinicState = Depends(get_clinic)):
        require_doctor(clinic)
        return [serialize(c) for c in reports.upcoming_appointments(clinic.doctor_consultations())]

    @app.get("/reports/consultations")
    async def report_consultations(
        start: Optional[date] = Query(None, description="First visit date YYYY-MM-DD"),
        end: Optional[date] = Query(None, description="Last visit date YYYY-MM-DD"),
        clinic: ClinicState = Depends(get_clinic),
    ):
        require_doctor(clinic)
        return reports.consultations_report(clinic.doctor_consultations(), clinic.doctor_patients(), start, end)

    @app.get("/reports/demographics")
    async def report_demographics(clinic: ClinicState = Depends(get_clinic)):
        require_doctor(clinic)
        return reports.demographics(clinic.doctor_patients())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
