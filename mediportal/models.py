"""
This module defines the primary data models for the MediPortal application.

These classes describe every record that is shown on the dashboards, kept in the
application state and mirrored to the remote store: users and their medical records,
emergency alerts, inpatient admissions, schedules, pharmacy stock, prescriptions
and medical board meetings. They carry no behaviour beyond conversion to and from
plain dictionaries.
"""
# mediportal/models.py

from __future__ import annotations

import random
import string
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

GUEST_PATIENT_ID = "GUEST"

_ID_ALPHABET = string.digits + string.ascii_lowercase


class UserRole(str, Enum):
    """The role a user acts under; it decides which dashboard is mounted."""
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class AdmissionStatus(str, Enum):
    ON_THE_WAY = "ON_THE_WAY"
    ADMITTED = "ADMITTED"
    DISCHARGED = "DISCHARGED"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESPONDED = "RESPONDED"
    RESOLVED = "RESOLVED"


class PrescriptionStatus(str, Enum):
    ORDERED = "ORDERED"
    APPROVED = "APPROVED"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"


class ScheduleType(str, Enum):
    SURGERY = "SURGERY"
    CONSULTATION = "CONSULTATION"
    ROUNDS = "ROUNDS"
    BREAK = "BREAK"


class Sex(str, Enum):
    M = "M"
    F = "F"
    OTHER = "Other"


def generate_id(length: int = 9) -> str:
    """Returns a random base-36 identifier. Not cryptographically secure."""
    return "".join(random.choice(_ID_ALPHABET) for _ in range(length))


def now_iso() -> str:
    """Returns the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def _plain_dict(items) -> Dict[str, Any]:
    # Enum members are stored by value so the result is JSON and BSON friendly.
    return {key: (value.value if isinstance(value, Enum) else value) for key, value in items}


class _Record:
    """Shared dictionary conversion for the dataclass models below."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self, dict_factory=_plain_dict)


@dataclass
class HistoryItem(_Record):
    """A single entry of a patient's medical history.

    Attributes:
        id (str): A unique identifier for the entry.
        date (str): When the event took place.
        event (str): A short title for the event.
        details (str): Free-text details.
        visit_type (str): The kind of visit (e.g. 'Outpatient', 'Emergency').
    """
    id: str
    date: str
    event: str
    details: str
    visit_type: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryItem":
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            event=data.get("event", ""),
            details=data.get("details", ""),
            visit_type=data.get("visit_type", ""),
        )


@dataclass
class Prescription(_Record):
    """A medication order and its progress through the pharmacy.

    Attributes:
        id (str): A unique identifier for the prescription.
        medication (str): The prescribed drug.
        dosage (str): Free-text dosage instructions.
        status (PrescriptionStatus): ORDERED, APPROVED or READY_FOR_PICKUP.
        prescribed_by (str): The name of the prescribing doctor.
        date (str): When the prescription was issued.
        patient_id (str, optional): The patient the prescription is for.
        patient_name (str, optional): The patient's display name.
    """
    id: str
    medication: str
    dosage: str
    status: PrescriptionStatus
    prescribed_by: str
    date: str
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prescription":
        return cls(
            id=data["id"],
            medication=data.get("medication", ""),
            dosage=data.get("dosage", ""),
            status=PrescriptionStatus(data.get("status", PrescriptionStatus.ORDERED.value)),
            prescribed_by=data.get("prescribed_by", ""),
            date=data.get("date", ""),
            patient_id=data.get("patient_id"),
            patient_name=data.get("patient_name"),
        )


@dataclass
class MedicalRecord(_Record):
    """A patient's medical record.

    Users with the PATIENT role own one live record. Emergency alerts and inpatient
    admissions carry their own copy, taken when they are created, which does not
    follow later edits to the live record.

    Attributes:
        blood_type (str): The patient's blood type.
        allergies (str): Known allergies, free text.
        conditions (str): Known conditions, free text.
        medications (str): Current medications, free text.
        last_updated (str): ISO timestamp of the last edit.
        medical_history (list, optional): Ordered HistoryItem entries.
        prescriptions (list, optional): Ordered Prescription entries.
    """
    blood_type: str
    allergies: str
    conditions: str
    medications: str
    last_updated: str
    medical_history: Optional[List[HistoryItem]] = None
    prescriptions: Optional[List[Prescription]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalRecord":
        history = data.get("medical_history")
        prescriptions = data.get("prescriptions")
        return cls(
            blood_type=data.get("blood_type", ""),
            allergies=data.get("allergies", ""),
            conditions=data.get("conditions", ""),
            medications=data.get("medications", ""),
            last_updated=data.get("last_updated", ""),
            medical_history=[HistoryItem.from_dict(h) for h in history] if history is not None else None,
            prescriptions=[Prescription.from_dict(p) for p in prescriptions] if prescriptions is not None else None,
        )


@dataclass
class User(_Record):
    """Represents a user of the portal: a patient, a doctor or an administrator.

    Attributes:
        id (str): A unique identifier for the user.
        name (str): The user's display name.
        email (str): The user's email address.
        role (UserRole): The user's role.
        photo (str, optional): A URL or data URI for the user's photo.
        medical_record (MedicalRecord, optional): Present for patients only.
    """
    id: str
    name: str
    email: str
    role: UserRole
    photo: Optional[str] = None
    medical_record: Optional[MedicalRecord] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        record = data.get("medical_record")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=UserRole(data.get("role", UserRole.PATIENT.value)),
            photo=data.get("photo"),
            medical_record=MedicalRecord.from_dict(record) if record else None,
        )


@dataclass
class GeoLocation(_Record):
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoLocation":
        return cls(lat=data["lat"], lng=data["lng"])


@dataclass
class EmergencyAlert(_Record):
    """An emergency reported by a patient, a doctor or an administrator.

    Attributes:
        id (str): A unique identifier for the alert.
        patient_id (str): The reporting patient's id, or GUEST_PATIENT_ID.
        patient_name (str): The name of the person in need.
        age (str): Age as entered on the report.
        sex (Sex): M, F or Other.
        incident_type (str): Accident or disease type, free text.
        timestamp (str): ISO timestamp of the report.
        medical_summary (MedicalRecord): Snapshot taken when the alert was raised.
        status (AlertStatus): ACTIVE, RESPONDED or RESOLVED.
        location (GeoLocation, optional): Where the emergency was reported from.
    """
    id: str
    patient_id: str
    patient_name: str
    age: str
    sex: Sex
    incident_type: str
    timestamp: str
    medical_summary: MedicalRecord
    status: AlertStatus = AlertStatus.ACTIVE
    location: Optional[GeoLocation] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmergencyAlert":
        location = data.get("location")
        return cls(
            id=data["id"],
            patient_id=data.get("patient_id") or GUEST_PATIENT_ID,
            patient_name=data.get("patient_name", ""),
            age=data.get("age", ""),
            sex=Sex(data.get("sex", Sex.OTHER.value)),
            incident_type=data.get("incident_type", ""),
            timestamp=data.get("timestamp", ""),
            medical_summary=MedicalRecord.from_dict(data.get("medical_summary") or {}),
            status=AlertStatus(data.get("status", AlertStatus.ACTIVE.value)),
            location=GeoLocation.from_dict(location) if location else None,
        )


@dataclass
class Inpatient(_Record):
    """A patient admitted to (or on the way to) a ward.

    `discharge_date` is set when, and only when, the status becomes DISCHARGED.
    """
    id: str
    patient_name: str
    status: AdmissionStatus
    admission_date: str
    ward: str
    attending_physician: str
    medical_summary: MedicalRecord
    dob: Optional[str] = None
    discharge_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Inpatient":
        return cls(
            id=data["id"],
            patient_name=data.get("patient_name", ""),
            status=AdmissionStatus(data.get("status", AdmissionStatus.ON_THE_WAY.value)),
            admission_date=data.get("admission_date", ""),
            ward=data.get("ward", ""),
            attending_physician=data.get("attending_physician", ""),
            medical_summary=MedicalRecord.from_dict(data.get("medical_summary") or {}),
            dob=data.get("dob"),
            discharge_date=data.get("discharge_date"),
        )


@dataclass
class ScheduleItem(_Record):
    """A booked slot on the hospital schedule. `time` is a display string."""
    id: str
    title: str
    time: str
    type: ScheduleType
    location: str
    patient_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleItem":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            time=data.get("time", ""),
            type=ScheduleType(data.get("type", ScheduleType.CONSULTATION.value)),
            location=data.get("location", ""),
            patient_name=data.get("patient_name"),
        )


@dataclass
class PharmacyItem(_Record):
    id: str
    name: str
    category: str
    available: bool
    last_restocked: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PharmacyItem":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=data.get("category", ""),
            available=bool(data.get("available", False)),
            last_restocked=data.get("last_restocked", ""),
        )


@dataclass
class MedicalBoardMeeting(_Record):
    id: str
    title: str
    date: str
    time: str
    specialty: str
    participants: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalBoardMeeting":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            date=data.get("date", ""),
            time=data.get("time", ""),
            specialty=data.get("specialty", ""),
            participants=list(data.get("participants") or []),
        )
