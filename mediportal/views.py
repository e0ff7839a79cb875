"""
Role routing for the MediPortal dashboards.

The Streamlit layer in `gui.py` renders; this module only decides which dashboard the
current user gets and which slices of the application state it is allowed to see.
"""
# mediportal/views.py

from enum import Enum
from typing import Any, Dict, Optional

from mediportal.models import User, UserRole


class ViewState(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


_ROLE_VIEWS = {
    UserRole.PATIENT: ViewState.PATIENT,
    UserRole.DOCTOR: ViewState.DOCTOR,
    UserRole.ADMIN: ViewState.ADMIN,
}


def view_state_for(user: Optional[User]) -> ViewState:
    """Returns the dashboard to mount for a user, or UNAUTHENTICATED for nobody."""
    if user is None:
        return ViewState.UNAUTHENTICATED
    return _ROLE_VIEWS[user.role]


def build_view_context(service) -> Dict[str, Any]:
    """Collects the data the active dashboard needs from the service.

    Patients get their own user, their appointments and the pharmacy stock. Doctors get the
    clinical collections. Admins get everything.

    Args:
        service (MediPortalService): The application state.

    Returns:
        dict: The view state under 'view' plus one entry per visible collection.
    """
    user = service.current_user
    view = view_state_for(user)
    context = {"view": view, "user": user}
    if view == ViewState.PATIENT:
        context.update(
            appointments=service.appointments_for(user),
            pharmacy_stock=service.pharmacy_stock,
        )
    elif view == ViewState.DOCTOR:
        context.update(
            active_alerts=service.active_alerts,
            inpatients=service.inpatients,
            schedules=service.schedules,
            board_meetings=service.board_meetings,
        )
    elif view == ViewState.ADMIN:
        context.update(
            active_alerts=service.active_alerts,
            inpatients=service.inpatients,
            schedules=service.schedules,
            board_meetings=service.board_meetings,
            pharmacy_stock=service.pharmacy_stock,
            prescriptions=service.prescriptions,
        )
    return context
