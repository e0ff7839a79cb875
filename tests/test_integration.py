"""
Integration tests for the MediPortal application.

These tests exercise the remote access layer against an in-memory MongoDB and check that
the service mirrors its changes to it: ordering of reads, store-assigned identifiers,
stock replacement, error reporting and the interplay between the auth provider, the
session resolver and the service.
"""
import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from conftest import STRONG_PASSWORD, sample_record
from mediportal import api as api_module
from mediportal.api import HospitalApi, RemoteAccessError
from mediportal.models import (
    AdmissionStatus,
    EmergencyAlert,
    Inpatient,
    MedicalBoardMeeting,
    PharmacyItem,
    PrescriptionStatus,
    ScheduleType,
    Sex,
    User,
    UserRole,
)
from mediportal.service import MediPortalService
from mediportal.session import user_from_metadata


def _alert_data(**overrides):
    data = {"patient_id": None, "patient_name": "Robert Chen", "age": "61", "sex": Sex.M,
            "incident_type": "Cardiac arrest"}
    data.update(overrides)
    return data


def test_remote_reads_are_ordered(api, mongo_db):
    mongo_db[api_module.EMERGENCY_ALERTS].insert_many([
        {"patient_name": "Early", "timestamp": "2024-01-01T08:00:00+00:00", "sex": "M", "status": "ACTIVE"},
        {"patient_name": "Late", "timestamp": "2024-01-01T09:00:00+00:00", "sex": "F", "status": "ACTIVE"},
    ])
    mongo_db[api_module.PHARMACY_INVENTORY].insert_many([
        {"name": "Zinc", "category": "Supplement", "available": True, "last_restocked": ""},
        {"name": "Aspirin", "category": "Analgesic", "available": False, "last_restocked": ""},
    ])
    alerts = api.get_emergency_alerts()
    assert [a.patient_name for a in alerts] == ["Late", "Early"]
    assert all(ObjectId.is_valid(a.id) for a in alerts)
    assert [item.name for item in api.get_pharmacy_stock()] == ["Aspirin", "Zinc"]


def test_remote_reads_return_empty_lists(api):
    assert api.get_inpatients() == []
    assert api.get_prescriptions() == []
    assert api.get_schedules() == []
    assert api.get_board_meetings() == []
    assert api.get_profile("missing") is None
    assert api.get_medical_record("missing") is None


def test_read_failures_raise_remote_access_error(failing_api):
    for read in (failing_api.get_emergency_alerts, failing_api.get_inpatients, failing_api.get_pharmacy_stock,
                 failing_api.get_prescriptions, failing_api.get_schedules, failing_api.get_board_meetings):
        with pytest.raises(RemoteAccessError):
            read()
    with pytest.raises(RemoteAccessError):
        failing_api.get_profile("u1")


def test_write_failures_follow_their_reporting_path(failing_api, capsys):
    assert failing_api.create_board_meeting(MedicalBoardMeeting("m", "T", "d", "t", "s")) is None
    assert failing_api.create_profile(User("u1", "A", "a@x.test", UserRole.PATIENT)) is False
    failing_api.delete_inpatient("i1")
    failing_api.update_prescription_status("rx1", PrescriptionStatus.APPROVED)
    assert "Warning" in capsys.readouterr().out

    alert = EmergencyAlert("a1", "GUEST", "A", "1", Sex.OTHER, "Fall", "now", sample_record())
    with pytest.raises(RemoteAccessError):
        failing_api.create_emergency_alert(alert)
    with pytest.raises(RemoteAccessError):
        failing_api.update_user_role("u1", UserRole.ADMIN)


def test_update_inpatient_status_stamps_discharge(api):
    inpatient_id = api.create_inpatient(_inpatient())
    assert api.update_inpatient_status(inpatient_id, AdmissionStatus.ADMITTED) is None
    discharged_at = api.update_inpatient_status(inpatient_id, AdmissionStatus.DISCHARGED)
    stored = api.get_inpatients()[0]
    assert stored.status == AdmissionStatus.DISCHARGED
    assert stored.discharge_date == discharged_at


def _inpatient():
    return Inpatient(id="local", patient_name="A", status=AdmissionStatus.ON_THE_WAY, admission_date="2024-01-01",
                     ward="W", attending_physician="Dr. Grey", medical_summary=sample_record())


def test_update_user_profile_updates_or_inserts_record(api, mongo_db, patient):
    api.create_profile(patient)
    api.update_user_profile(patient.id, {"name": "Sarah J.", "photo": "http://p", "medical_record": patient.medical_record})
    api.update_user_profile(patient.id, {"medical_record": sample_record(blood_type="AB+")})

    assert mongo_db[api_module.MEDICAL_RECORDS].count_documents({"user_id": patient.id}) == 1
    profile = api.get_profile(patient.id)
    assert profile["name"] == "Sarah J." and profile["photo_url"] == "http://p"
    record = api.get_medical_record(patient.id)
    assert record.blood_type == "AB+"
    assert record.last_updated != sample_record().last_updated


def test_replace_pharmacy_stock_with_five_items(remote_service, api):
    remote_service.update_stock(remote_service.pharmacy_stock)
    assert len(api.get_pharmacy_stock()) == 4
    persisted = {item.name: item.id for item in remote_service.pharmacy_stock}

    new_stock = [
        PharmacyItem(persisted["Acetaminophen"], "Acetaminophen", "Analgesic", False, "2024-02-01"),
        PharmacyItem("n1", "Cetirizine", "Antihistamine", True, "2024-02-01"),
        PharmacyItem("n2", "Ibuprofen", "Analgesic", True, "2024-02-01"),
        PharmacyItem("n3", "Metformin", "Metabolic", True, "2024-02-01"),
        PharmacyItem("n4", "Omeprazole", "Gastric", True, "2024-02-01"),
    ]
    remote_service.update_stock(new_stock)

    stored = api.get_pharmacy_stock()
    assert [item.name for item in stored] == ["Acetaminophen", "Cetirizine", "Ibuprofen", "Metformin", "Omeprazole"]
    assert stored[0].id == persisted["Acetaminophen"] and stored[0].available is False
    assert {item.id for item in stored} == {item.id for item in remote_service.pharmacy_stock}
    assert "n1" not in {item.id for item in stored}


def test_service_keeps_discharge_date_written_by_store(remote_service, api, admin, monkeypatch):
    monkeypatch.setattr(api_module, "now_iso", lambda: "2024-05-01T12:00:00+00:00")
    remote_service.login(admin)
    inpatient = remote_service.manual_admit({"name": "A", "status": AdmissionStatus.ADMITTED, "ward": "W",
                                             "blood_type": "A+", "allergies": "None"})
    remote_service.update_inpatient_status(inpatient.id, AdmissionStatus.DISCHARGED)

    local = remote_service.inpatients[0].discharge_date
    assert local == "2024-05-01T12:00:00+00:00"
    assert api.get_inpatients()[0].discharge_date == local
    remote_service.load_remote()
    assert remote_service.inpatients[0].discharge_date == local


class _FlakyInserts:
    """Delegates to a real collection but fails every insert after the first `allowed` ones."""

    def __init__(self, collection, allowed):
        self._collection = collection
        self.allowed = allowed

    def insert_one(self, document):
        if self.allowed is not None:
            if self.allowed == 0:
                raise PyMongoError("connection reset")
            self.allowed -= 1
        return self._collection.insert_one(document)

    def __getattr__(self, name):
        return getattr(self._collection, name)


class _FlakyDatabase:
    def __init__(self, db, allowed):
        self._db = db
        self.pharmacy = _FlakyInserts(db[api_module.PHARMACY_INVENTORY], allowed)

    def __getitem__(self, name):
        return self.pharmacy if name == api_module.PHARMACY_INVENTORY else self._db[name]


def test_partial_stock_replace_only_remembers_written_items(store, mongo_db, capsys):
    flaky = _FlakyDatabase(mongo_db, allowed=1)
    service = MediPortalService(store, api=HospitalApi(flaky))

    service.update_stock([PharmacyItem("n1", "Aspirin", "Analgesic", True, "2024-02-01"),
                          PharmacyItem("n2", "Zinc", "Supplement", True, "2024-02-01")])
    assert "Warning" in capsys.readouterr().out
    aspirin, zinc = service.pharmacy_stock
    assert ObjectId.is_valid(aspirin.id)
    assert zinc.id == "n2"

    flaky.pharmacy.allowed = None
    service.update_stock(service.pharmacy_stock)

    stored = HospitalApi(mongo_db).get_pharmacy_stock()
    assert [item.name for item in stored] == ["Aspirin", "Zinc"]
    assert stored[0].id == aspirin.id
    assert ObjectId.is_valid(stored[1].id)
    assert {item.id for item in stored} == {item.id for item in service.pharmacy_stock}


def test_service_adopts_store_assigned_ids(remote_service, api, doctor):
    remote_service.login(doctor)
    alert = remote_service.create_emergency(_alert_data())
    stored_alert = remote_service.active_alerts[0]
    assert stored_alert == alert
    assert ObjectId.is_valid(alert.id)
    assert [a.id for a in api.get_emergency_alerts()] == [stored_alert.id]

    inpatient = remote_service.admit_patient(stored_alert)
    assert api.get_emergency_alerts() == []
    stored = api.get_inpatients()
    assert [p.id for p in stored] == [inpatient.id] == [remote_service.inpatients[0].id]
    assert stored[0].patient_name == inpatient.patient_name == "Robert Chen"


def test_service_mirrors_schedules_meetings_and_prescriptions(remote_service, api, mongo_db, doctor, admin):
    remote_service.login(doctor)
    remote_service.book_appointment({"title": "Follow-up", "time": "03:00 PM", "type": ScheduleType.CONSULTATION,
                                     "location": "Clinic", "patient_name": "Sarah Jenkins"})
    assert mongo_db[api_module.SCHEDULES].find_one()["doctor_id"] == doctor.id

    meeting = remote_service.schedule_meeting({"title": "Cardiology board", "date": "2024-03-01", "time": "09:00 AM",
                                               "specialty": "Cardiology", "participants": ["Dr. Grey"]})
    prescription = remote_service.prescribe("Amoxicillin", "500mg", patient_name="Sarah Jenkins")
    remote_service.update_prescription_status(remote_service.prescriptions[0].id, PrescriptionStatus.APPROVED)

    assert [m.title for m in api.get_board_meetings()] == [meeting.title]
    stored_rx = api.get_prescriptions()
    assert stored_rx[0].medication == prescription.medication
    assert stored_rx[0].status == PrescriptionStatus.APPROVED

    remote_service.login(admin)
    assert remote_service.delete_meeting(remote_service.board_meetings[0].id)
    assert api.get_board_meetings() == []


def test_load_remote_replaces_collections(remote_service, api, store):
    remote_service.create_emergency(_alert_data())
    fresh = MediPortalService(store, api=api)
    assert fresh.active_alerts == []
    fresh.load_remote()
    assert [a.patient_name for a in fresh.active_alerts] == ["Robert Chen"]
    assert fresh.pharmacy_stock == []
    assert fresh.schedules == []


def test_load_remote_propagates_read_failures(store, failing_api):
    service = MediPortalService(store, api=failing_api)
    with pytest.raises(RemoteAccessError):
        service.load_remote()


def test_create_emergency_keeps_local_alert_when_remote_fails(store, failing_api):
    service = MediPortalService(store, api=failing_api)
    with pytest.raises(RemoteAccessError):
        service.create_emergency(_alert_data())
    assert len(service.active_alerts) == 1


def test_sign_up_provisions_profile_and_logs_in(remote_service, api):
    user = remote_service.sign_up("grey@x.test", STRONG_PASSWORD, "Dr. Grey", UserRole.DOCTOR)
    assert user.role == UserRole.DOCTOR
    assert remote_service.current_user == user
    assert api.get_profile(user.id)["email"] == "grey@x.test"
    assert remote_service.sign_up("grey@x.test", STRONG_PASSWORD, "Dr. Grey", UserRole.DOCTOR) is False
    assert remote_service.sign_up("new@x.test", "weak", "New", UserRole.DOCTOR) == 'weak_password'


def test_update_user_role_by_admin(remote_service, api, auth):
    patient_principal = auth.sign_up("p@x.test", STRONG_PASSWORD, "Pat", UserRole.PATIENT)
    remote_service.sign_up("admin@x.test", STRONG_PASSWORD, "Admin", UserRole.ADMIN)
    api.create_profile(user_from_metadata(patient_principal))

    assert remote_service.update_user_role(patient_principal.id, UserRole.DOCTOR) is True
    assert api.get_profile(patient_principal.id)["role"] == "DOCTOR"


def test_restore_session_uses_signed_in_principal(remote_service, store, api, auth):
    user = remote_service.sign_up("r@x.test", STRONG_PASSWORD, "Riley", UserRole.PATIENT)
    restored = MediPortalService(store, api=api, auth=auth).restore_session()
    assert restored.id == user.id

    remote_service.logout()
    assert MediPortalService(store, api=api, auth=auth).restore_session() is None
