"""
This module is MediPortal's remote access layer.

It defines `HospitalApi`, a thin, stateless wrapper around the remote store with one cluster
of calls per entity: users and medical records, emergency alerts, inpatients, pharmacy stock,
prescriptions, schedules and board meetings. Each call:
- maps the domain object to its flat row (see `mediportal.rows`) or back,
- issues exactly one request against the store (stock replacement issues one per item),
- reports failures according to the path it is on.

Read paths raise `RemoteAccessError` when the store fails. Write paths print a warning and carry
on, except for creating an emergency alert and changing a user's role, which raise. There are no
retries, no idempotency keys and no concurrency checks: the last write wins.
"""
# mediportal/api.py

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from mediportal import rows
from mediportal.models import (
    AdmissionStatus,
    EmergencyAlert,
    Inpatient,
    MedicalBoardMeeting,
    MedicalRecord,
    PharmacyItem,
    Prescription,
    PrescriptionStatus,
    ScheduleItem,
    User,
    UserRole,
    now_iso,
)

PROFILES = "profiles"
MEDICAL_RECORDS = "medical_records"
EMERGENCY_ALERTS = "emergency_alerts"
INPATIENTS = "inpatients"
PHARMACY_INVENTORY = "pharmacy_inventory"
PRESCRIPTIONS = "prescriptions"
SCHEDULES = "schedules"
BOARD_MEETINGS = "board_meetings"

Row = Dict[str, Any]


class RemoteAccessError(Exception):
    """Raised when the remote store fails on a path that reports its failures."""


def _store_id(identifier: str):
    # Store-assigned ids are ObjectIds; profile ids and local ids are plain strings.
    return ObjectId(identifier) if ObjectId.is_valid(identifier) else identifier


def _by_id(identifier: str) -> Dict[str, Any]:
    return {"_id": _store_id(identifier)}


def _to_document(row: Row) -> Row:
    document = dict(row)
    identifier = document.pop("id", None)
    if identifier is not None:
        document["_id"] = _store_id(identifier)
    return document


def _from_document(document: Row) -> Row:
    row = dict(document)
    row["id"] = str(row.pop("_id"))
    return row


class HospitalApi:
    """Issues the remote reads and writes for every entity cluster."""

    def __init__(self, db: Database):
        """Initializes the API with a handle to the remote database.

        Args:
            db (Database): The database holding one collection per entity cluster.
        """
        self._db = db

    # Low-level helpers

    def _read(self, table: str, query: Optional[Dict] = None, sort: Optional[tuple] = None) -> List[Row]:
        try:
            cursor = self._db[table].find(query or {})
            if sort:
                cursor = cursor.sort(*sort)
            return [_from_document(document) for document in cursor]
        except PyMongoError as e:
            raise RemoteAccessError(f"Could not read '{table}': {e}") from e

    def _read_one(self, table: str, query: Dict) -> Optional[Row]:
        try:
            document = self._db[table].find_one(query)
        except PyMongoError as e:
            raise RemoteAccessError(f"Could not read '{table}': {e}") from e
        return _from_document(document) if document else None

    def _insert(self, table: str, row: Row, raise_errors: bool = False) -> Optional[str]:
        """Inserts a row and lets the store assign its identifier.

        Returns:
            str or None: The new identifier, or None if the insert failed quietly.
        """
        document = _to_document(row)
        document.pop("_id", None)
        try:
            result = self._db[table].insert_one(document)
        except PyMongoError as e:
            if raise_errors:
                raise RemoteAccessError(f"Could not insert into '{table}': {e}") from e
            print(f"Warning: Could not insert into '{table}' ({e}).")
            return None
        return str(result.inserted_id)

    def _update(self, table: str, query: Dict, changes: Row, raise_errors: bool = False) -> bool:
        try:
            self._db[table].update_one(query, {"$set": changes})
        except PyMongoError as e:
            if raise_errors:
                raise RemoteAccessError(f"Could not update '{table}': {e}") from e
            print(f"Warning: Could not update '{table}' ({e}).")
            return False
        return True

    def _delete(self, table: str, identifier: str) -> bool:
        try:
            self._db[table].delete_one(_by_id(identifier))
        except PyMongoError as e:
            print(f"Warning: Could not delete from '{table}' ({e}).")
            return False
        return True

    # Users and medical records

    def get_profile(self, user_id: str) -> Optional[Row]:
        return self._read_one(PROFILES, _by_id(user_id))

    def get_medical_record(self, user_id: str) -> Optional[MedicalRecord]:
        """Retrieves the medical record owned by a user. At most one is expected."""
        row = self._read_one(MEDICAL_RECORDS, {"user_id": user_id})
        return rows.row_to_medical_record(row) if row else None

    def profile_to_user(self, profile: Row) -> User:
        """Builds a User from a profile row, loading the medical record for patients."""
        medical_record = None
        if profile.get("role") == UserRole.PATIENT.value:
            medical_record = self.get_medical_record(profile["id"])
        return rows.profile_row_to_user(profile, medical_record)

    def create_profile(self, user: User) -> bool:
        """Inserts a profile row keyed by the user's own id.

        Returns:
            bool: True if the row was written, False otherwise.
        """
        try:
            self._db[PROFILES].insert_one(_to_document(rows.user_to_profile_row(user)))
        except PyMongoError as e:
            print(f"Warning: Could not create profile for {user.id} ({e}).")
            return False
        return True

    def update_user_role(self, user_id: str, role: UserRole):
        self._update(PROFILES, _by_id(user_id), {"role": role.value}, raise_errors=True)

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]):
        """Writes profile changes and, if given, the user's medical record.

        Args:
            user_id (str): The user to update.
            updates (dict): Any of 'name', 'photo' and 'medical_record'. Other keys are ignored.
        """
        profile_changes = {}
        if updates.get("name"):
            profile_changes["name"] = updates["name"]
        if updates.get("photo"):
            profile_changes["photo_url"] = updates["photo"]
        if profile_changes:
            self._update(PROFILES, _by_id(user_id), profile_changes)

        record = updates.get("medical_record")
        if not record:
            return
        record_row = rows.medical_record_to_row(replace(record, last_updated=now_iso()), user_id=user_id)
        try:
            existing = self._db[MEDICAL_RECORDS].find_one({"user_id": user_id}, {"_id": 1})
        except PyMongoError as e:
            print(f"Warning: Could not look up medical record for {user_id} ({e}).")
            return
        if existing:
            self._update(MEDICAL_RECORDS, {"user_id": user_id}, record_row)
        else:
            self._insert(MEDICAL_RECORDS, record_row)

    # Emergency alerts

    def get_emergency_alerts(self) -> List[EmergencyAlert]:
        return [rows.row_to_alert(r) for r in self._read(EMERGENCY_ALERTS, sort=("timestamp", DESCENDING))]

    def create_emergency_alert(self, alert: EmergencyAlert) -> Optional[str]:
        return self._insert(EMERGENCY_ALERTS, rows.alert_to_row(alert), raise_errors=True)

    def delete_emergency_alert(self, alert_id: str):
        self._delete(EMERGENCY_ALERTS, alert_id)

    # Inpatients

    def get_inpatients(self) -> List[Inpatient]:
        return [rows.row_to_inpatient(r) for r in self._read(INPATIENTS, sort=("admission_date", DESCENDING))]

    def create_inpatient(self, inpatient: Inpatient) -> Optional[str]:
        return self._insert(INPATIENTS, rows.inpatient_to_row(inpatient))

    def update_inpatient_status(self, inpatient_id: str, status: AdmissionStatus) -> Optional[str]:
        """Changes an inpatient's status, stamping the discharge date on discharge.

        Returns:
            str or None: The discharge date written, if any.
        """
        changes = {"status": status.value}
        if status == AdmissionStatus.DISCHARGED:
            changes["discharge_date"] = now_iso()
        if not self._update(INPATIENTS, _by_id(inpatient_id), changes):
            return None
        return changes.get("discharge_date")

    def update_inpatient_medical_record(self, inpatient_id: str, record: MedicalRecord):
        self._update(INPATIENTS, _by_id(inpatient_id), {"medical_summary_snapshot": record.to_dict()})

    def delete_inpatient(self, inpatient_id: str):
        self._delete(INPATIENTS, inpatient_id)

    # Pharmacy

    def get_pharmacy_stock(self) -> List[PharmacyItem]:
        return [rows.row_to_pharmacy_item(r) for r in self._read(PHARMACY_INVENTORY, sort=("name", ASCENDING))]

    def replace_pharmacy_stock(self, items: Iterable[PharmacyItem],
                               persisted_ids: Iterable[str]) -> Tuple[List[PharmacyItem], Set[str]]:
        """Makes the stored inventory exactly the given items.

        Items whose id is in `persisted_ids` are written over their stored row; every other item
        is new and gets a store-assigned id. Stored rows that are not in `items` are removed.
        If a write fails, the remaining items are returned unchanged and left out of the stored ids.

        Args:
            items (iterable): The complete new inventory, in display order.
            persisted_ids (iterable): The ids already known to the store.

        Returns:
            tuple: The inventory, new items carrying their assigned id, and the set of ids
                   that are now in the store.
        """
        items = list(items)
        persisted = set(persisted_ids)
        collection = self._db[PHARMACY_INVENTORY]
        stored = []
        try:
            for item in items:
                row = rows.pharmacy_item_to_row(item)
                if item.id in persisted:
                    collection.replace_one(_by_id(item.id), _to_document(row), upsert=True)
                    stored.append(item)
                else:
                    document = _to_document(row)
                    document.pop("_id", None)
                    result = collection.insert_one(document)
                    stored.append(replace(item, id=str(result.inserted_id)))
            collection.delete_many({"_id": {"$nin": [_store_id(item.id) for item in stored]}})
        except PyMongoError as e:
            print(f"Warning: Could not replace pharmacy stock ({e}).")
            unwritten = items[len(stored):]
            stored_ids = {item.id for item in stored} | {item.id for item in unwritten if item.id in persisted}
            return stored + unwritten, stored_ids
        return stored, {item.id for item in stored}

    # Prescriptions

    def get_prescriptions(self) -> List[Prescription]:
        return [rows.row_to_prescription(r) for r in self._read(PRESCRIPTIONS, sort=("date", DESCENDING))]

    def create_prescription(self, prescription: Prescription) -> Optional[str]:
        return self._insert(PRESCRIPTIONS, rows.prescription_to_row(prescription))

    def update_prescription_status(self, prescription_id: str, status: PrescriptionStatus):
        self._update(PRESCRIPTIONS, _by_id(prescription_id), {"status": status.value})

    # Schedules

    def get_schedules(self) -> List[ScheduleItem]:
        return [rows.row_to_schedule(r) for r in self._read(SCHEDULES)]

    def create_schedule(self, item: ScheduleItem, doctor_id: Optional[str]) -> Optional[str]:
        return self._insert(SCHEDULES, rows.schedule_to_row(item, doctor_id))

    # Board meetings

    def get_board_meetings(self) -> List[MedicalBoardMeeting]:
        return [rows.row_to_meeting(r) for r in self._read(BOARD_MEETINGS)]

    def create_board_meeting(self, meeting: MedicalBoardMeeting) -> Optional[str]:
        return self._insert(BOARD_MEETINGS, rows.meeting_to_row(meeting))

    def delete_board_meeting(self, meeting_id: str):
        self._delete(BOARD_MEETINGS, meeting_id)
