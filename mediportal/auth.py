"""
This module is the boundary to MediPortal's auth provider.

`AuthProvider` keeps accounts in the remote store and remembers the signed-in principal in the
local session store, the way a hosted auth client keeps its session in browser storage. It only
answers "who is signed in"; turning that principal into a MediPortal `User` is the job of
`mediportal.session.SessionResolver`.

It is responsible for:
- Registering accounts (email, password and a metadata bag of name, role and photo).
- Password hashing and verification.
- Signing in and out, and returning the current principal.
"""
# mediportal/auth.py

import hashlib
import os
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Union

from pymongo.database import Database

from mediportal.models import UserRole, now_iso
from mediportal.storage import LocalStore

ACCOUNTS = "auth_users"
AUTH_SESSION_KEY = "mediportal_auth"


@dataclass
class Principal:
    """The signed-in identity as the auth provider knows it.

    Attributes:
        id (str): The account id, shared with the user's profile row.
        email (str): The account email.
        user_metadata (dict): Free-form metadata recorded at sign-up (name, role, photo).
    """
    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)


class AuthProvider:
    """Registers accounts and tracks the signed-in principal."""

    def __init__(self, db: Database, store: LocalStore):
        """Initializes the provider.

        Args:
            db (Database): The database holding the accounts collection.
            store (LocalStore): Where the signed-in principal is remembered.
        """
        self._db = db
        self._store = store

    @staticmethod
    def _hash_password(salt: str, password: str) -> str:
        return hashlib.sha256((salt + password).encode()).hexdigest()

    @staticmethod
    def is_strong_password(password: str) -> bool:
        """Checks if a password meets the defined strength criteria."""
        if len(password) < 8:
            return False
        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)
        has_special = any(not c.isalnum() for c in password)
        return has_upper and has_lower and has_digit and has_special

    def sign_up(self, email: str, password: str, name: str, role: UserRole, photo: str = "") -> Union[Principal, str, bool]:
        """Registers a new account.

        Args:
            email (str): The account email; must not already be registered.
            password (str): The plaintext password.
            name (str): Display name, recorded in the metadata.
            role (UserRole): Requested role, recorded in the metadata.
            photo (str, optional): Photo URL, recorded in the metadata.

        Returns:
            Principal or str or bool: The new principal, 'weak_password', or False if the
                                      email is already registered.
        """
        if not self.is_strong_password(password):
            return 'weak_password'
        accounts = self._db[ACCOUNTS]
        if accounts.find_one({"email": email}):
            return False

        salt = os.urandom(16).hex()
        principal = Principal(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata={"name": name, "role": role.value, "photo": photo},
        )
        accounts.insert_one({
            "_id": principal.id,
            "email": email,
            "salt": salt,
            "password_hash": self._hash_password(salt, password),
            "user_metadata": principal.user_metadata,
            "created_at": now_iso(),
        })
        return principal

    def sign_in(self, email: str, password: str) -> Optional[Principal]:
        """Verifies the credentials and remembers the principal.

        Returns:
            Principal or None: The signed-in principal, or None if authentication fails.
        """
        account = self._db[ACCOUNTS].find_one({"email": email})
        if not account or not account.get('salt'):
            return None
        if account.get('password_hash') != self._hash_password(account['salt'], password):
            return None
        principal = Principal(
            id=str(account["_id"]),
            email=account.get("email", email),
            user_metadata=dict(account.get("user_metadata") or {}),
        )
        self._store.set_item(AUTH_SESSION_KEY, asdict(principal))
        return principal

    def get_user(self) -> Optional[Principal]:
        """Returns the signed-in principal, or None if nobody is signed in."""
        saved = self._store.get_item(AUTH_SESSION_KEY)
        if not saved:
            return None
        return Principal(
            id=saved["id"],
            email=saved.get("email", ""),
            user_metadata=dict(saved.get("user_metadata") or {}),
        )

    def sign_out(self):
        self._store.remove_item(AUTH_SESSION_KEY)
