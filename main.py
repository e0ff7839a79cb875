"""
This is the main entry point for the MediPortal Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration for the Streamlit app.
- Loads the settings and opens the database connection once per process.
- Creates one `MediPortalService` per browser session, restores the user signed in from that
  browser and loads the hospital data from the database.
- Routes the user to the authentication pages or to the dashboard for their role.
"""
# main.py

import streamlit as st

import gui
from mediportal.api import HospitalApi, RemoteAccessError
from mediportal.auth import AuthProvider
from mediportal.config import load_settings
from mediportal.database import get_database
from mediportal.encryption import get_encryptor
from mediportal.service import MediPortalService
from mediportal.storage import LocalStore, client_id
from mediportal.views import ViewState, view_state_for

st.set_page_config(
    page_title="MediPortal",
    layout="wide"
)


@st.cache_resource
def get_settings():
    return load_settings()


@st.cache_resource
def get_mediportal_database():
    """
    Opens the database connection, or returns None in offline mode.

    This function is decorated with `@st.cache_resource` so the client is created once and
    shared by every session.
    """
    return get_database(get_settings())


def create_service():
    """Builds the service for a new session and restores its state.

    Returns:
        MediPortalService: The session's service instance.
    """
    settings = get_settings()
    store = LocalStore(settings.store_file, get_encryptor(settings.key_file), client=client_id(st.query_params))
    db = get_mediportal_database()
    if db is None:
        service = MediPortalService(store)
    else:
        service = MediPortalService(store, api=HospitalApi(db), auth=AuthProvider(db, store))
    try:
        service.restore_session()
        service.load_remote()
    except RemoteAccessError as e:
        st.error(f"Could not load hospital data: {e}")
    return service


if 'service' not in st.session_state:
    st.session_state.service = create_service()
if 'auth_page' not in st.session_state:
    st.session_state.auth_page = 'welcome'

service = st.session_state.service

# Main App Router
if view_state_for(service.current_user) != ViewState.UNAUTHENTICATED:
    gui.show_main_app(service)
elif st.session_state.auth_page == 'login':
    gui.show_login_form(service)
elif st.session_state.auth_page == 'register':
    gui.show_register_form(service)
else:
    gui.show_welcome_page()
