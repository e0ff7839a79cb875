"""
System-level tests for the MediPortal application.

These tests walk through complete workflows across the auth provider, the session
resolver, the service and the remote store, and check the state of the system at the
end: a patient raising an SOS that a doctor admits and discharges, an administrator
managing the hospital, and a session surviving a restart of the app.
"""
from conftest import STRONG_PASSWORD, sample_record
from mediportal.api import HospitalApi
from mediportal.auth import AuthProvider
from mediportal.models import AdmissionStatus, PharmacyItem, PrescriptionStatus, Sex, UserRole
from mediportal.service import MediPortalService
from mediportal.storage import DEFAULT_CLIENT, LocalStore, client_id
from mediportal.views import ViewState, build_view_context, view_state_for


def _session(mongo_db, store_path, encryptor, client=DEFAULT_CLIENT):
    """Builds the per-browser-session objects the way the app entry point does."""
    store = LocalStore(store_path, encryptor, client=client)
    return MediPortalService(store, api=HospitalApi(mongo_db), auth=AuthProvider(mongo_db, store))


def test_emergency_to_discharge_workflow(mongo_db, tmp_path, encryptor):
    patient_session = _session(mongo_db, str(tmp_path / "patient.json"), encryptor)
    doctor_session = _session(mongo_db, str(tmp_path / "doctor.json"), encryptor)

    patient = patient_session.sign_up("sarah@x.test", STRONG_PASSWORD, "Sarah Jenkins", UserRole.PATIENT)
    assert view_state_for(patient) == ViewState.PATIENT
    assert patient.medical_record is None
    record = patient_session.update_user({"medical_record": sample_record()}).medical_record

    alert = patient_session.create_emergency({
        "patient_id": patient.id, "patient_name": patient.name, "age": "34", "sex": Sex.F,
        "incident_type": "Chest pain", "location": {"lat": 51.5, "lng": -0.12},
    })
    assert alert.medical_summary == record

    doctor = doctor_session.sign_up("grey@x.test", STRONG_PASSWORD, "Dr. Grey", UserRole.DOCTOR)
    doctor_session.load_remote()
    context = build_view_context(doctor_session)
    assert context["view"] == ViewState.DOCTOR
    [incoming] = context["active_alerts"]
    assert incoming.patient_name == "Sarah Jenkins"
    assert incoming.location.lat == 51.5
    assert incoming.medical_summary.blood_type == record.blood_type

    inpatient = doctor_session.admit_patient(incoming)
    assert doctor_session.inpatients == [inpatient]
    assert inpatient.attending_physician == doctor.name
    assert doctor_session.active_alerts == []

    doctor_session.update_inpatient_status(inpatient.id, AdmissionStatus.ADMITTED)
    doctor_session.update_inpatient_status(inpatient.id, AdmissionStatus.DISCHARGED)

    patient_session.load_remote()
    assert patient_session.active_alerts == []
    [stored] = patient_session.inpatients
    assert stored.status == AdmissionStatus.DISCHARGED
    assert stored.discharge_date is not None
    assert stored.medical_summary.blood_type == record.blood_type


def test_admin_manages_hospital(mongo_db, tmp_path, encryptor):
    admin_session = _session(mongo_db, str(tmp_path / "admin.json"), encryptor)
    doctor_session = _session(mongo_db, str(tmp_path / "doctor.json"), encryptor)
    doctor_session.sign_up("grey@x.test", STRONG_PASSWORD, "Dr. Grey", UserRole.DOCTOR)
    admin_session.sign_up("admin@x.test", STRONG_PASSWORD, "Admin", UserRole.ADMIN)

    doctor_session.create_emergency({"patient_id": None, "patient_name": "Guest", "age": "", "sex": Sex.OTHER,
                                     "incident_type": "Fall"})
    doctor_session.manual_admit({"name": "Robert Chen", "status": AdmissionStatus.ADMITTED, "ward": "Ward 3",
                                 "blood_type": "B+", "allergies": "Latex"})
    doctor_session.prescribe("Insulin Humalog", "10 units", patient_name="Robert Chen")
    assert doctor_session.delete_emergency(doctor_session.active_alerts[0].id) is False

    admin_session.load_remote()
    assert admin_session.delete_emergency(admin_session.active_alerts[0].id) is True
    assert admin_session.delete_inpatient(admin_session.inpatients[0].id) is True
    admin_session.update_prescription_status(admin_session.prescriptions[0].id, PrescriptionStatus.READY_FOR_PICKUP)
    admin_session.update_stock([PharmacyItem(f"n{i}", f"Drug {i}", "General", True, "2024-01-01") for i in range(5)])

    doctor_session.load_remote()
    assert doctor_session.active_alerts == []
    assert doctor_session.inpatients == []
    assert doctor_session.prescriptions[0].status == PrescriptionStatus.READY_FOR_PICKUP
    assert [item.name for item in doctor_session.pharmacy_stock] == [f"Drug {i}" for i in range(5)]

    assert admin_session.update_user_role(doctor_session.current_user.id, UserRole.ADMIN) is True
    restarted = _session(mongo_db, str(tmp_path / "doctor.json"), encryptor)
    assert restarted.restore_session().role == UserRole.ADMIN


def test_session_survives_restart_until_logout(mongo_db, store_path, encryptor):
    first = _session(mongo_db, store_path, encryptor)
    user = first.sign_up("riley@x.test", STRONG_PASSWORD, "Riley", UserRole.PATIENT)
    assert first.sign_in("riley@x.test", "Wr0ng!Pass") is None

    second = _session(mongo_db, store_path, encryptor)
    assert second.restore_session().id == user.id
    second.logout()

    third = _session(mongo_db, store_path, encryptor)
    assert third.restore_session() is None
    assert view_state_for(third.current_user) == ViewState.UNAUTHENTICATED


def test_offline_session_survives_restart(store_path, encryptor, doctor):
    first = MediPortalService(LocalStore(store_path, encryptor))
    first.login(doctor)
    first.create_emergency({"patient_id": None, "patient_name": "Guest", "age": "", "sex": Sex.OTHER,
                            "incident_type": "Fall"})

    second = MediPortalService(LocalStore(store_path, encryptor))
    assert second.restore_session() == doctor
    # Only the user is persisted; collections start again from the fixtures.
    assert second.active_alerts == []
    assert len(second.pharmacy_stock) == 4


def test_new_browser_does_not_inherit_signed_in_user(mongo_db, store_path, encryptor):
    admin_browser = {}
    admin_session = _session(mongo_db, store_path, encryptor, client=client_id(admin_browser))
    admin = admin_session.sign_up("admin@x.test", STRONG_PASSWORD, "Admin", UserRole.ADMIN)

    stranger = _session(mongo_db, store_path, encryptor, client=client_id({}))
    assert stranger.restore_session() is None
    assert view_state_for(stranger.current_user) == ViewState.UNAUTHENTICATED

    reloaded = _session(mongo_db, store_path, encryptor, client=client_id(admin_browser))
    assert reloaded.restore_session().id == admin.id
