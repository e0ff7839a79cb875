"""
Mapping between MediPortal entities and the flat rows kept in the remote store.

Every table stores one flat, snake_case row per entity. The functions here translate
field by field in both directions and never touch the store themselves; `mediportal.api`
uses them around each call. Medical summaries are stored whole, as a nested snapshot.
"""
# mediportal/rows.py

from typing import Any, Dict, Optional

from mediportal.models import (
    GUEST_PATIENT_ID,
    AdmissionStatus,
    AlertStatus,
    EmergencyAlert,
    GeoLocation,
    Inpatient,
    MedicalBoardMeeting,
    MedicalRecord,
    PharmacyItem,
    Prescription,
    PrescriptionStatus,
    ScheduleItem,
    ScheduleType,
    Sex,
    User,
    UserRole,
)

Row = Dict[str, Any]

DEFAULT_PHYSICIAN = "Dr. On Duty"
DEFAULT_PRESCRIBER = "Doctor"


# Users

def user_to_profile_row(user: User) -> Row:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "photo_url": user.photo,
    }


def profile_row_to_user(row: Row, medical_record: Optional[MedicalRecord] = None) -> User:
    return User(
        id=row["id"],
        name=row.get("name", ""),
        email=row.get("email", ""),
        role=UserRole(row.get("role", UserRole.PATIENT.value)),
        photo=row.get("photo_url"),
        medical_record=medical_record,
    )


def medical_record_to_row(record: MedicalRecord, user_id: Optional[str] = None) -> Row:
    row = record.to_dict()
    if user_id is not None:
        row["user_id"] = user_id
    return row


def row_to_medical_record(row: Row) -> MedicalRecord:
    return MedicalRecord.from_dict(row)


# Emergency alerts

def alert_to_row(alert: EmergencyAlert) -> Row:
    return {
        "id": alert.id,
        "patient_id": alert.patient_id if alert.patient_id != GUEST_PATIENT_ID else None,
        "patient_name": alert.patient_name,
        "age": alert.age,
        "sex": alert.sex.value,
        "incident_type": alert.incident_type,
        "timestamp": alert.timestamp,
        "location_lat": alert.location.lat if alert.location else None,
        "location_lng": alert.location.lng if alert.location else None,
        "status": alert.status.value,
        "medical_summary_snapshot": alert.medical_summary.to_dict(),
    }


def row_to_alert(row: Row) -> EmergencyAlert:
    lat, lng = row.get("location_lat"), row.get("location_lng")
    return EmergencyAlert(
        id=row["id"],
        patient_id=row.get("patient_id") or GUEST_PATIENT_ID,
        patient_name=row.get("patient_name", ""),
        age=row.get("age", ""),
        sex=Sex(row.get("sex", Sex.OTHER.value)),
        incident_type=row.get("incident_type", ""),
        timestamp=row.get("timestamp", ""),
        location=GeoLocation(lat=lat, lng=lng) if lat is not None and lng is not None else None,
        status=AlertStatus(row.get("status", AlertStatus.ACTIVE.value)),
        medical_summary=MedicalRecord.from_dict(row.get("medical_summary_snapshot") or {}),
    )


# Inpatients

def inpatient_to_row(inpatient: Inpatient) -> Row:
    return {
        "id": inpatient.id,
        "patient_name": inpatient.patient_name,
        "dob": inpatient.dob,
        "status": inpatient.status.value,
        "admission_date": inpatient.admission_date,
        "discharge_date": inpatient.discharge_date,
        "ward": inpatient.ward,
        "attending_physician": inpatient.attending_physician,
        "medical_summary_snapshot": inpatient.medical_summary.to_dict(),
    }


def row_to_inpatient(row: Row) -> Inpatient:
    return Inpatient(
        id=row["id"],
        patient_name=row.get("patient_name", ""),
        dob=row.get("dob"),
        status=AdmissionStatus(row.get("status", AdmissionStatus.ON_THE_WAY.value)),
        admission_date=row.get("admission_date", ""),
        discharge_date=row.get("discharge_date"),
        ward=row.get("ward", ""),
        attending_physician=row.get("attending_physician") or DEFAULT_PHYSICIAN,
        medical_summary=MedicalRecord.from_dict(row.get("medical_summary_snapshot") or {}),
    )


# Pharmacy

def pharmacy_item_to_row(item: PharmacyItem) -> Row:
    return {
        "id": item.id,
        "name": item.name,
        "available": item.available,
        "category": item.category,
        "last_restocked": item.last_restocked,
    }


def row_to_pharmacy_item(row: Row) -> PharmacyItem:
    return PharmacyItem(
        id=row["id"],
        name=row.get("name", ""),
        available=bool(row.get("available", False)),
        category=row.get("category", ""),
        last_restocked=row.get("last_restocked", ""),
    )


# Prescriptions

def prescription_to_row(prescription: Prescription) -> Row:
    return {
        "id": prescription.id,
        "medication": prescription.medication,
        "dosage": prescription.dosage,
        "status": prescription.status.value,
        "prescribed_by": prescription.prescribed_by,
        "date": prescription.date,
        "patient_id": prescription.patient_id,
        "patient_name": prescription.patient_name,
    }


def row_to_prescription(row: Row) -> Prescription:
    return Prescription(
        id=row["id"],
        medication=row.get("medication", ""),
        dosage=row.get("dosage", ""),
        status=PrescriptionStatus(row.get("status", PrescriptionStatus.ORDERED.value)),
        prescribed_by=row.get("prescribed_by") or DEFAULT_PRESCRIBER,
        date=row.get("date", ""),
        patient_id=row.get("patient_id"),
        patient_name=row.get("patient_name"),
    )


# Schedules

def schedule_to_row(item: ScheduleItem, doctor_id: Optional[str] = None) -> Row:
    return {
        "id": item.id,
        "doctor_id": doctor_id,
        "title": item.title,
        "time_string": item.time,
        "type": item.type.value,
        "patient_name": item.patient_name,
        "location": item.location,
    }


def row_to_schedule(row: Row) -> ScheduleItem:
    return ScheduleItem(
        id=row["id"],
        title=row.get("title", ""),
        time=row.get("time_string", ""),
        type=ScheduleType(row.get("type", ScheduleType.CONSULTATION.value)),
        patient_name=row.get("patient_name"),
        location=row.get("location", ""),
    )


# Board meetings

def meeting_to_row(meeting: MedicalBoardMeeting) -> Row:
    return {
        "id": meeting.id,
        "title": meeting.title,
        "meeting_date": meeting.date,
        "meeting_time": meeting.time,
        "specialty": meeting.specialty,
        "participants": list(meeting.participants),
    }


def row_to_meeting(row: Row) -> MedicalBoardMeeting:
    return MedicalBoardMeeting(
        id=row["id"],
        title=row.get("title", ""),
        date=row.get("meeting_date", ""),
        time=row.get("meeting_time", ""),
        specialty=row.get("specialty", ""),
        participants=list(row.get("participants") or []),
    )
