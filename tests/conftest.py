"""
Pytest configuration file for the MediPortal test suite.

This file defines shared fixtures used across the test modules. It includes:
- An isolated, encrypted session store in a temporary directory for every test, so tests
  never touch the real `session.json` or `secret.key`.
- An offline `MediPortalService` seeded with the fixture collections.
- An in-memory MongoDB (via `mongomock`) with the remote access layer, auth provider and a
  remote-backed service on top of it.
- A database whose every operation fails, for exercising the error paths.
- Factories for patient, doctor and admin users.
"""
import mongomock
import pytest
from cryptography.fernet import Fernet
from pymongo.errors import PyMongoError

from mediportal.api import HospitalApi
from mediportal.auth import AuthProvider
from mediportal.models import MedicalRecord, User, UserRole
from mediportal.service import MediPortalService
from mediportal.storage import LocalStore

STRONG_PASSWORD = "V4lid!Pass"


@pytest.fixture
def encryptor():
    """Provides a Fernet instance with a throwaway key."""
    return Fernet(Fernet.generate_key())


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "session.json")


@pytest.fixture
def store(store_path, encryptor):
    return LocalStore(store_path, encryptor)


@pytest.fixture
def service(store):
    """Provides an offline service with the seed pharmacy stock and schedule."""
    return MediPortalService(store)


@pytest.fixture
def mongo_db():
    """Provides an empty in-memory database."""
    return mongomock.MongoClient()["mediportal_test"]


@pytest.fixture
def api(mongo_db):
    return HospitalApi(mongo_db)


@pytest.fixture
def auth(mongo_db, store):
    return AuthProvider(mongo_db, store)


@pytest.fixture
def remote_service(store, api, auth):
    """Provides a service that mirrors every change to the in-memory database."""
    return MediPortalService(store, api=api, auth=auth)


class _FailingCollection:
    """A collection whose every operation fails as if the server were unreachable."""

    def _fail(self, *args, **kwargs):
        raise PyMongoError("connection refused")

    find = find_one = insert_one = update_one = replace_one = delete_one = delete_many = _fail


class _FailingDatabase:
    def __getitem__(self, name):
        return _FailingCollection()


@pytest.fixture
def failing_api():
    """Provides an API over a database that rejects every request."""
    return HospitalApi(_FailingDatabase())


def sample_record(**overrides):
    """Builds a filled-in medical record for tests."""
    values = dict(
        blood_type="O+",
        allergies="Penicillin",
        conditions="Asthma",
        medications="Ventolin",
        last_updated="2024-01-01T00:00:00+00:00",
    )
    values.update(overrides)
    return MedicalRecord(**values)


def make_user(role, user_id=None, name=None, with_record=None):
    """Builds a user of the given role. Patients get a medical record unless told otherwise."""
    label = role.value.lower()
    if with_record is None:
        with_record = role == UserRole.PATIENT
    return User(
        id=user_id or f"{label}-1",
        name=name or f"{label.title()} User",
        email=f"{label}@mediportal.test",
        role=role,
        photo="",
        medical_record=sample_record() if with_record else None,
    )


@pytest.fixture
def patient():
    return make_user(UserRole.PATIENT, name="Sarah Jenkins")


@pytest.fixture
def doctor():
    return make_user(UserRole.DOCTOR, name="Dr. Grey")


@pytest.fixture
def admin():
    return make_user(UserRole.ADMIN, name="Admin")
