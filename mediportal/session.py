"""
Resolution of the signed-in principal to a MediPortal user.
"""
# mediportal/session.py

from typing import Optional

from mediportal.api import HospitalApi
from mediportal.auth import AuthProvider, Principal
from mediportal.models import User, UserRole


class SessionResolver:
    """Turns the auth provider's current principal into a `User`."""

    def __init__(self, api: HospitalApi, auth: AuthProvider):
        self._api = api
        self._auth = auth

    def get_current_user(self) -> Optional[User]:
        """Resolves the current user.

        A principal without a profile row (the provisioning step failed or never ran) is
        repaired on the fly: the user is built from the principal's metadata and a profile
        row is written for next time. A failed write is not reported; the metadata-built
        user is returned either way.

        Returns:
            User or None: The current user, or None if nobody is signed in.
        """
        principal = self._auth.get_user()
        if principal is None:
            return None

        profile = self._api.get_profile(principal.id)
        if profile:
            return self._api.profile_to_user(profile)

        print(f"Warning: Profile missing for user {principal.id}, rebuilding it from account metadata.")
        user = user_from_metadata(principal)
        self._api.create_profile(user)
        return user


def user_from_metadata(principal: Principal) -> User:
    """Builds a best-guess User from a principal's metadata, with defaults for missing fields."""
    metadata = principal.user_metadata or {}
    email = principal.email or ''
    name = metadata.get('name') or (email.split('@')[0] if email else '') or 'Unknown User'
    try:
        role = UserRole(metadata.get('role'))
    except ValueError:
        role = UserRole.PATIENT
    return User(
        id=principal.id,
        name=name,
        email=email,
        role=role,
        photo=metadata.get('photo') or '',
    )
