"""
This module provides the application state and business logic for MediPortal.

It defines the `MediPortalService` class, which is responsible for:
- Holding the current user and every collection shown on the dashboards.
- Login, logout and restoring the session user from the local store.
- The actions behind the dashboards: raising emergencies, admitting patients, booking
  appointments, scheduling board meetings, managing stock and prescriptions.
- Role checks for admin-only actions.
- Mirroring every change to the remote store when one is configured.

Collections are never changed in place. Each action builds a new list from the previous one
and hands it to `_commit`, so a view holding an older list keeps seeing that list. Changes are
applied locally first and then sent to the remote store; the two are not transactional.
"""
# mediportal/service.py

import copy
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from mediportal.api import HospitalApi
from mediportal.auth import AuthProvider
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
    generate_id,
    now_iso,
)
from mediportal.rows import DEFAULT_PHYSICIAN
from mediportal.session import SessionResolver
from mediportal.storage import LocalStore

SESSION_USER_KEY = 'mediportal_user'
ADMISSION_WARD = 'ICU - West Wing'
MANUAL_ENTRY_CONDITIONS = 'Admitted via Registration/Manual Entry'


def initial_pharmacy_stock() -> List[PharmacyItem]:
    """Returns the seed pharmacy catalog."""
    restocked = now_iso()
    return [
        PharmacyItem(id='st1', name='Acetaminophen', category='Analgesic', available=True, last_restocked=restocked),
        PharmacyItem(id='st2', name='Amoxicillin', category='Antibiotic', available=True, last_restocked=restocked),
        PharmacyItem(id='st3', name='Insulin Humalog', category='Metabolic', available=True, last_restocked=restocked),
        PharmacyItem(id='st4', name='Ventolin HFA', category='Respiratory', available=False, last_restocked=restocked),
    ]


def initial_schedules() -> List[ScheduleItem]:
    """Returns the seed schedule."""
    return [
        ScheduleItem(id='s1', title='Cardiac Surgery', time='09:00 AM', type=ScheduleType.SURGERY,
                     patient_name='Robert Chen', location='OR-4'),
        ScheduleItem(id='s2', title='ER Consultation', time='11:30 AM', type=ScheduleType.CONSULTATION,
                     patient_name='Sarah Jenkins', location='Exam Room 2'),
        ScheduleItem(id='s3', title='Ward Rounds', time='02:00 PM', type=ScheduleType.ROUNDS, location='Wing B'),
    ]


def placeholder_medical_summary(incident_type: str) -> MedicalRecord:
    """The summary attached to an emergency raised by someone without a medical record."""
    return MedicalRecord(
        blood_type='Pending',
        allergies='Unknown',
        conditions=incident_type,
        medications='None',
        last_updated=now_iso(),
    )


class MediPortalService:
    """Holds the application state and performs every dashboard action."""

    def __init__(self, store: LocalStore, api: Optional[HospitalApi] = None,
                 auth: Optional[AuthProvider] = None, resolver: Optional[SessionResolver] = None):
        """Initializes the service with fixture-seeded collections.

        Args:
            store (LocalStore): The local store the session user is persisted to.
            api (HospitalApi, optional): The remote store. Without it the service runs offline.
            auth (AuthProvider, optional): The auth provider used for email sign-in.
            resolver (SessionResolver, optional): Resolves the signed-in principal to a user.
        """
        self._store = store
        self._api = api
        self._auth = auth
        self._resolver = resolver or (SessionResolver(api, auth) if api and auth else None)
        self.current_user: Optional[User] = None
        self.active_alerts: List[EmergencyAlert] = []
        self.inpatients: List[Inpatient] = []
        self.pharmacy_stock: List[PharmacyItem] = initial_pharmacy_stock()
        self.prescriptions: List[Prescription] = []
        self.board_meetings: List[MedicalBoardMeeting] = []
        self.schedules: List[ScheduleItem] = initial_schedules()
        # Pharmacy ids the remote store already holds; anything else is new on the next upload.
        self._stored_stock_ids = set()

    @property
    def is_remote(self) -> bool:
        return self._api is not None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.role == UserRole.ADMIN

    def _commit(self, collection: str, update: Callable[[list], list]):
        """Replaces a collection with the result of applying `update` to its previous value."""
        setattr(self, collection, update(getattr(self, collection)))

    def _adopt_remote_id(self, collection: str, entity, remote_id: Optional[str]):
        """Swaps a locally generated id for the one the remote store assigned.

        Returns:
            The entity as it now sits in the collection.
        """
        if not remote_id or remote_id == entity.id:
            return entity
        adopted = replace(entity, id=remote_id)
        self._commit(collection, lambda prev: [adopted if x.id == entity.id else x for x in prev])
        return adopted

    def load_remote(self):
        """Replaces every collection with what the remote store holds.

        Raises:
            RemoteAccessError: If any read fails. Collections read before the failure are kept.
        """
        if not self._api:
            return
        self.active_alerts = self._api.get_emergency_alerts()
        self.inpatients = self._api.get_inpatients()
        self.pharmacy_stock = self._api.get_pharmacy_stock()
        self._stored_stock_ids = {item.id for item in self.pharmacy_stock}
        self.prescriptions = self._api.get_prescriptions()
        self.schedules = self._api.get_schedules()
        self.board_meetings = self._api.get_board_meetings()

    # Session

    def login(self, user: User) -> User:
        """Makes `user` the current user and persists it."""
        self.current_user = user
        self._store.set_item(SESSION_USER_KEY, user.to_dict())
        return user

    def sign_in(self, email: str, password: str) -> Optional[User]:
        """Authenticates with the auth provider and logs the resolved user in.

        Returns:
            User or None: The logged-in user, or None if the credentials are rejected or
                          no auth provider is configured.
        """
        if not self._auth or not self._resolver:
            return None
        if self._auth.sign_in(email, password) is None:
            return None
        user = self._resolver.get_current_user()
        if user is None:
            return None
        return self.login(user)

    def sign_up(self, email: str, password: str, name: str, role: UserRole, photo: str = '') -> Union[User, str, bool, None]:
        """Registers an account, provisions its profile and logs it in.

        Returns:
            User or str or bool or None: The logged-in user, 'weak_password', False if the email
                                         is taken, or None without an auth provider.
        """
        if not self._auth or not self._api:
            return None
        result = self._auth.sign_up(email, password, name, role, photo)
        if not result or result == 'weak_password':
            return result
        self._api.create_profile(User(id=result.id, name=name, email=email, role=role, photo=photo))
        return self.sign_in(email, password)

    def restore_session(self) -> Optional[User]:
        """Restores the current user when the app starts.

        With a resolver the signed-in principal is authoritative; otherwise the user saved in
        the local store is reloaded.

        Returns:
            User or None: The restored user.
        """
        if self._resolver is not None:
            user = self._resolver.get_current_user()
            if user is None:
                self._store.remove_item(SESSION_USER_KEY)
            else:
                self._store.set_item(SESSION_USER_KEY, user.to_dict())
        else:
            saved = self._store.get_item(SESSION_USER_KEY)
            user = User.from_dict(saved) if saved else None
        self.current_user = user
        return user

    def logout(self):
        """Logs out the current user and forgets the persisted session."""
        self.current_user = None
        self._store.remove_item(SESSION_USER_KEY)
        if self._auth:
            self._auth.sign_out()

    def update_user(self, updates: Dict[str, Any]) -> Optional[User]:
        """Shallow-merges `updates` into the current user and persists the result.

        Name, photo and medical record changes are also written to the remote store.
        """
        if not self.current_user:
            return None
        self.current_user = replace(self.current_user, **updates)
        self._store.set_item(SESSION_USER_KEY, self.current_user.to_dict())
        if self._api:
            self._api.update_user_profile(self.current_user.id, updates)
        return self.current_user

    def switch_role(self, role: UserRole) -> Optional[User]:
        """Simulated role switch for demos; the change stays local to this session."""
        if not self.current_user:
            return None
        self.current_user = replace(self.current_user, role=role)
        self._store.set_item(SESSION_USER_KEY, self.current_user.to_dict())
        return self.current_user

    def update_user_role(self, user_id: str, role: UserRole) -> bool:
        """Changes another user's role in the remote store. Admins only.

        Raises:
            RemoteAccessError: If the remote update fails.
        """
        if not self.is_admin or not self._api:
            return False
        self._api.update_user_role(user_id, role)
        if self.current_user.id == user_id:
            self.switch_role(role)
        return True

    # Emergencies

    def create_emergency(self, alert_data: Dict[str, Any]) -> EmergencyAlert:
        """Raises a new emergency alert.

        The alert's medical summary is a copy of the caller's medical record, or a placeholder
        naming the incident when the caller has none.

        Args:
            alert_data (dict): patient_id, patient_name, age, sex, incident_type and an optional
                               location (GeoLocation or {'lat', 'lng'}).

        Raises:
            RemoteAccessError: If the remote insert fails. The local alert is kept.
        """
        record = self.current_user.medical_record if self.current_user else None
        location = alert_data.get('location')
        if isinstance(location, dict):
            location = GeoLocation.from_dict(location)
        alert = EmergencyAlert(
            id=generate_id(),
            patient_id=alert_data.get('patient_id') or GUEST_PATIENT_ID,
            patient_name=alert_data['patient_name'],
            age=str(alert_data.get('age', '')),
            sex=Sex(alert_data.get('sex', Sex.OTHER)),
            incident_type=alert_data['incident_type'],
            timestamp=now_iso(),
            location=location,
            status=AlertStatus.ACTIVE,
            medical_summary=copy.deepcopy(record) if record else placeholder_medical_summary(alert_data['incident_type']),
        )
        self._commit('active_alerts', lambda prev: [alert] + prev)
        if self._api:
            alert = self._adopt_remote_id('active_alerts', alert, self._api.create_emergency_alert(alert))
        return alert

    def delete_emergency(self, alert_id: str) -> bool:
        """Removes an alert. Silently does nothing unless the current user is an admin."""
        if not self.is_admin:
            return False
        self._commit('active_alerts', lambda prev: [a for a in prev if a.id != alert_id])
        if self._api:
            self._api.delete_emergency_alert(alert_id)
        return True

    # Admissions

    def admit_patient(self, alert: EmergencyAlert) -> Inpatient:
        """Admits the patient of an emergency alert and takes the alert off the active list."""
        inpatient = Inpatient(
            id=alert.patient_id if alert.patient_id != GUEST_PATIENT_ID else generate_id(),
            patient_name=alert.patient_name,
            status=AdmissionStatus.ON_THE_WAY,
            admission_date=now_iso(),
            ward=ADMISSION_WARD,
            attending_physician=self.current_user.name if self.current_user else DEFAULT_PHYSICIAN,
            medical_summary=copy.deepcopy(alert.medical_summary),
        )
        self._commit('inpatients', lambda prev: [inpatient] + prev)
        self._commit('active_alerts', lambda prev: [a for a in prev if a.id != alert.id])
        if self._api:
            inpatient = self._adopt_remote_id('inpatients', inpatient, self._api.create_inpatient(inpatient))
            self._api.delete_emergency_alert(alert.id)
        return inpatient

    def manual_admit(self, data: Dict[str, Any]) -> Inpatient:
        """Registers an inpatient from the manual admission form.

        Args:
            data (dict): name, status, ward, blood_type, allergies and optionally dob and id.
        """
        timestamp = now_iso()
        inpatient = Inpatient(
            id=data.get('id') or generate_id(),
            patient_name=data['name'],
            dob=data.get('dob'),
            status=AdmissionStatus(data['status']),
            admission_date=timestamp,
            ward=data['ward'],
            attending_physician=self.current_user.name if self.current_user else DEFAULT_PHYSICIAN,
            medical_summary=MedicalRecord(
                blood_type=data['blood_type'],
                allergies=data['allergies'],
                conditions=MANUAL_ENTRY_CONDITIONS,
                medications='None recorded',
                last_updated=timestamp,
            ),
        )
        self._commit('inpatients', lambda prev: [inpatient] + prev)
        if self._api:
            inpatient = self._adopt_remote_id('inpatients', inpatient, self._api.create_inpatient(inpatient))
        return inpatient

    def delete_inpatient(self, inpatient_id: str) -> bool:
        """Removes an inpatient. Silently does nothing unless the current user is an admin."""
        if not self.is_admin:
            return False
        self._commit('inpatients', lambda prev: [p for p in prev if p.id != inpatient_id])
        if self._api:
            self._api.delete_inpatient(inpatient_id)
        return True

    def update_inpatient_status(self, inpatient_id: str, status: AdmissionStatus):
        """Sets an inpatient's status. The discharge date is stamped only on discharge.

        When a remote store is attached, the discharge date it wrote replaces the local one.
        """
        self._set_inpatient_status(inpatient_id, status, now_iso())
        if self._api:
            discharged_at = self._api.update_inpatient_status(inpatient_id, status)
            if discharged_at:
                self._set_inpatient_status(inpatient_id, status, discharged_at)

    def _set_inpatient_status(self, inpatient_id: str, status: AdmissionStatus, discharged_at: str):
        self._commit('inpatients', lambda prev: [
            replace(p, status=status,
                    discharge_date=discharged_at if status == AdmissionStatus.DISCHARGED else p.discharge_date)
            if p.id == inpatient_id else p
            for p in prev
        ])

    def update_patient_record(self, inpatient_id: str, record: MedicalRecord):
        """Replaces an inpatient's medical summary. The patient's own record is not touched."""
        self._commit('inpatients', lambda prev: [
            replace(p, medical_summary=record) if p.id == inpatient_id else p for p in prev
        ])
        if self._api:
            self._api.update_inpatient_medical_record(inpatient_id, record)

    # Schedules and meetings

    def book_appointment(self, booking: Dict[str, Any]) -> ScheduleItem:
        """Adds a booking to the schedule.

        Args:
            booking (dict): title, time, type, location and an optional patient_name.
        """
        item = ScheduleItem(
            id=generate_id(),
            title=booking['title'],
            time=booking['time'],
            type=ScheduleType(booking['type']),
            location=booking['location'],
            patient_name=booking.get('patient_name'),
        )
        self._commit('schedules', lambda prev: prev + [item])
        if self._api:
            doctor_id = self.current_user.id if self.current_user else None
            item = self._adopt_remote_id('schedules', item, self._api.create_schedule(item, doctor_id))
        return item

    def appointments_for(self, user: User) -> List[ScheduleItem]:
        """Returns the schedule entries booked under the user's exact name."""
        return [s for s in self.schedules if s.patient_name == user.name]

    def schedule_meeting(self, meeting: Dict[str, Any]) -> MedicalBoardMeeting:
        """Adds a medical board meeting.

        Args:
            meeting (dict): title, date, time, specialty and participants.
        """
        new_meeting = MedicalBoardMeeting(
            id=generate_id(),
            title=meeting['title'],
            date=meeting['date'],
            time=meeting['time'],
            specialty=meeting['specialty'],
            participants=list(meeting.get('participants') or []),
        )
        self._commit('board_meetings', lambda prev: prev + [new_meeting])
        if self._api:
            new_meeting = self._adopt_remote_id('board_meetings', new_meeting, self._api.create_board_meeting(new_meeting))
        return new_meeting

    def delete_meeting(self, meeting_id: str) -> bool:
        """Removes a board meeting. Silently does nothing unless the current user is an admin."""
        if not self.is_admin:
            return False
        self._commit('board_meetings', lambda prev: [m for m in prev if m.id != meeting_id])
        if self._api:
            self._api.delete_board_meeting(meeting_id)
        return True

    # Pharmacy

    def update_stock(self, new_stock: List[PharmacyItem]):
        """Replaces the whole pharmacy inventory with `new_stock`."""
        self._commit('pharmacy_stock', lambda prev: list(new_stock))
        if self._api:
            stock, self._stored_stock_ids = self._api.replace_pharmacy_stock(new_stock, self._stored_stock_ids)
            self._commit('pharmacy_stock', lambda prev: stock)

    def prescribe(self, medication: str, dosage: str, patient_name: Optional[str] = None,
                  patient_id: Optional[str] = None) -> Prescription:
        """Issues a prescription in the current user's name."""
        prescription = Prescription(
            id=generate_id(),
            medication=medication,
            dosage=dosage,
            status=PrescriptionStatus.ORDERED,
            prescribed_by=self.current_user.name if self.current_user else DEFAULT_PHYSICIAN,
            date=now_iso(),
            patient_id=patient_id,
            patient_name=patient_name,
        )
        self._commit('prescriptions', lambda prev: prev + [prescription])
        if self._api:
            prescription = self._adopt_remote_id('prescriptions', prescription, self._api.create_prescription(prescription))
        return prescription

    def update_prescription_status(self, prescription_id: str, status: PrescriptionStatus):
        self._commit('prescriptions', lambda prev: [
            replace(p, status=status) if p.id == prescription_id else p for p in prev
        ])
        if self._api:
            self._api.update_prescription_status(prescription_id, status)
