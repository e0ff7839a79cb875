"""
This module defines the graphical user interface (GUI) for the MediPortal application using Streamlit.

It includes functions for rendering all UI components: the authentication pages (welcome, login,
register), the role-specific dashboards (Patient Hub, Doctor Dashboard, Admin Console) and the
pages behind them, such as emergency SOS, admissions, schedules, board meetings, pharmacy stock,
prescriptions and data export.

The main entry point for the UI is `show_main_app`, which mounts the dashboard for the current
user's role. Pages are looked up by key in `PAGES`; each page receives the service and renders
from the service's current state.
"""
# gui.py

import datetime
import json
from dataclasses import replace

import pandas as pd
import streamlit as st

from mediportal.api import RemoteAccessError
from mediportal.models import (
    GUEST_PATIENT_ID,
    AdmissionStatus,
    GeoLocation,
    MedicalRecord,
    PharmacyItem,
    PrescriptionStatus,
    ScheduleType,
    Sex,
    User,
    UserRole,
    generate_id,
    now_iso,
)
from mediportal.service import ADMISSION_WARD
from mediportal.views import ViewState, build_view_context, view_state_for

ROLE_LABELS = {UserRole.PATIENT: "Patient", UserRole.DOCTOR: "Doctor", UserRole.ADMIN: "Administrator"}
BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-", "Pending"]


def _format_timestamp(timestamp_str):
    """Converts an ISO 8601 timestamp string into a human-readable local time format.

    Args:
        timestamp_str (str): The ISO-formatted timestamp string.

    Returns:
        str: A formatted string (e.g., "Jan 01, 2024 • 14:30") or the original
             string if conversion fails.
    """
    if not timestamp_str:
        return "Unknown time"
    try:
        timestamp = datetime.datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=datetime.timezone.utc)
        return timestamp.astimezone().strftime("%b %d, %Y • %H:%M")
    except ValueError:
        return timestamp_str


def _label(value):
    """Turns an enum value such as READY_FOR_PICKUP into 'Ready For Pickup'."""
    return value.value.replace('_', ' ').title()


def _render_medical_record(record):
    """Renders a read-only summary of a medical record."""
    if not record:
        st.info("No medical record on file.")
        return
    col1, col2 = st.columns(2)
    with col1:
        st.write(f"**Blood Type:** {record.blood_type}")
        st.write(f"**Allergies:** {record.allergies}")
    with col2:
        st.write(f"**Conditions:** {record.conditions}")
        st.write(f"**Medications:** {record.medications}")
    st.caption(f"Last updated: {_format_timestamp(record.last_updated)}")


# Page navigation helpers
def set_page_welcome():
    """Sets the session state to display the welcome page."""
    st.session_state.auth_page = 'welcome'

def set_page_login():
    """Sets the session state to display the login page."""
    st.session_state.auth_page = 'login'

def set_page_register():
    """Sets the session state to display the registration page."""
    st.session_state.auth_page = 'register'


# Authentication Pages
def show_welcome_page():
    """Displays the main welcome screen with login and registration options."""
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>Welcome to MediPortal</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Emergencies, admissions and hospital operations in one place.</p>", unsafe_allow_html=True)
        st.info("Patients can raise an SOS and manage their record. Doctors and administrators run the wards.")

        st.button("Login to an Existing Account", on_click=set_page_login, use_container_width=True, type="primary")
        st.button("Create a New Account", on_click=set_page_register, use_container_width=True)


def show_login_form(service):
    """Displays the login form and handles user authentication.

    Connected to a remote store, users sign in with email and password. Offline, any name and
    role can be used to open a demo session.

    Args:
        service: The main application service instance.
    """
    st.button("← Back to Welcome", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Account Login</h2>", unsafe_allow_html=True)
        if service.is_remote:
            with st.form("login_form"):
                email = st.text_input("Email")
                password = st.text_input("Password", type="password")
                submitted = st.form_submit_button("Login", use_container_width=True)

                if submitted:
                    if not email or not password:
                        st.error("Email and Password are required.")
                    else:
                        with st.spinner("Logging in..."):
                            user = service.sign_in(email, password)
                            if user:
                                st.session_state.auth_page = 'welcome'
                                st.rerun()
                            else:
                                st.error("Invalid email or password.")
        else:
            st.caption("Offline demo mode: no account is needed.")
            with st.form("demo_login_form"):
                name = st.text_input("Full Name")
                email = st.text_input("Email")
                role = st.selectbox("Login as", list(UserRole), format_func=lambda r: ROLE_LABELS[r])
                submitted = st.form_submit_button("Login", use_container_width=True)

                if submitted:
                    if not name:
                        st.error("Full Name is required.")
                    else:
                        record = None
                        if role == UserRole.PATIENT:
                            record = MedicalRecord(blood_type="Pending", allergies="None known", conditions="None",
                                                   medications="None", last_updated=now_iso())
                        service.login(User(id=generate_id(), name=name, email=email, role=role, photo="",
                                           medical_record=record))
                        st.session_state.auth_page = 'welcome'
                        st.rerun()


def show_register_form(service):
    """Displays the user registration form and handles new account creation.

    Args:
        service: The main application service instance.
    """
    st.button("← Back to Welcome", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Create a New Account</h2>", unsafe_allow_html=True)
        if not service.is_remote:
            st.info("Registration needs a database connection. Use the demo login instead.")
            return
        with st.form("register_form"):
            name = st.text_input("Full Name")
            email = st.text_input("Email")
            role = st.selectbox("Select your role", list(UserRole), format_func=lambda r: ROLE_LABELS[r])
            password = st.text_input(
                "Choose a Password",
                type="password",
                help="Use at least 8 characters with uppercase, lowercase, number, and symbol."
            )
            photo = st.text_input("Photo URL (Optional)")

            submitted = st.form_submit_button("Register", use_container_width=True)

            if submitted:
                if not name or not email or not password:
                    st.error("All fields are required.")
                else:
                    with st.spinner("Registering..."):
                        result = service.sign_up(email, password, name, role, photo)
                        if result == 'weak_password':
                            st.error("Password must be at least 8 characters and include uppercase, lowercase, number, and symbol.")
                        elif result:
                            st.session_state.auth_page = 'welcome'
                            st.rerun()
                        else:
                            st.error(f"An account for {email} already exists.")


# Main Application UI
def show_main_app(service):
    """
    The main application router that displays the dashboard for the current user's role.

    With no page selected the role's menu is shown; otherwise the selected page is looked up in
    `PAGES` and rendered under a back button. Remote failures raised while rendering are shown
    as errors instead of stopping the app.

    Args:
        service: The main application service instance.
    """
    user = service.current_user
    view = view_state_for(user)
    if view == ViewState.UNAUTHENTICATED:
        return

    # Reset page state if the user's role changes or on the first load.
    if 'page' not in st.session_state or st.session_state.get('current_role') != user.role:
        st.session_state.page = None
        st.session_state.current_role = user.role

    title, menu_items = MENUS[view]
    page = st.session_state.page
    try:
        if page is None:
            _show_main_menu(service, menu_items, title)
        elif page in PAGES and page in {value for _, value, _ in menu_items}:
            _show_back_button()
            PAGES[page](service)
        else:
            st.session_state.page = None
            st.rerun()
    except RemoteAccessError as e:
        st.error(f"Could not reach the hospital database: {e}")


def _show_main_menu(service, options, title):
    """
    Renders the dashboard header and the menu for a given user role.

    Args:
        service: The main application service instance.
        options (list): A list of tuples, where each tuple contains the
                        label, page key, and description for a menu item.
        title (str): The title of the menu (e.g., "Doctor Dashboard").
    """
    user = service.current_user
    context = build_view_context(service)
    active_alerts = context.get('active_alerts')
    if active_alerts:
        st.warning(f"🚨 {len(active_alerts)} active emergency alerts awaiting response.")
    st.markdown(f"## {title} - {user.name}")
    st.caption(f"{ROLE_LABELS[user.role]} · {user.email or 'no email on file'}")
    st.divider()
    for idx, (label, value, description) in enumerate(options):
        if st.button(label, key=f"{user.role.value}_menu_btn_{idx}", use_container_width=True):
            st.session_state.page = value
            st.rerun()
        st.caption(description)
        st.divider()

    col1, col2 = st.columns(2)
    with col1:
        # Simulated role switch for demos; it does not change the stored profile.
        roles = list(UserRole)
        new_role = st.selectbox("Switch role (demo)", roles, index=roles.index(user.role),
                                format_func=lambda r: ROLE_LABELS[r], key="switch_role_select")
        if st.button("Switch Role", key="switch_role_btn", use_container_width=True) and new_role != user.role:
            service.switch_role(new_role)
            st.rerun()
    with col2:
        if st.button("Log Out", key=f"{user.role.value}_logout_btn", use_container_width=True):
            with st.spinner("Logging out..."):
                service.logout()
                st.session_state.auth_page = 'welcome'
                st.session_state.page = None
                st.rerun()


def _show_back_button():
    """Renders a button to navigate back to the main menu."""
    if st.button("← Back to Main Menu"):
        st.session_state.page = None
        st.rerun()


# Shared pages
def _render_sos_page(service):
    """Renders the emergency SOS form. Patients report for themselves by default."""
    st.markdown("<h2 style='text-align: center;'>🚨 Emergency SOS</h2>", unsafe_allow_html=True)
    user = service.current_user
    is_patient = user.role == UserRole.PATIENT
    with st.form("sos_form"):
        patient_name = st.text_input("Patient Name", value=user.name if is_patient else "")
        age = st.text_input("Age")
        sex = st.selectbox("Sex", list(Sex), format_func=lambda s: s.value)
        incident_type = st.text_input("Accident / Disease Type", placeholder="e.g. Chest pain, Road accident")
        share_location = st.checkbox("Share my location")
        lat = st.number_input("Latitude", value=0.0, format="%.6f")
        lng = st.number_input("Longitude", value=0.0, format="%.6f")
        submitted = st.form_submit_button("Send SOS", type="primary", use_container_width=True)

        if submitted:
            if not patient_name or not incident_type:
                st.error("Patient Name and Accident / Disease Type are required.")
            else:
                alert = service.create_emergency({
                    "patient_id": user.id if is_patient else GUEST_PATIENT_ID,
                    "patient_name": patient_name,
                    "age": age,
                    "sex": sex,
                    "incident_type": incident_type,
                    "location": GeoLocation(lat=lat, lng=lng) if share_location else None,
                })
                st.success(f"Emergency alert sent at {_format_timestamp(alert.timestamp)}. Help is on the way.")


def _render_profile_page(service):
    """Renders the user profile page for viewing and editing personal details."""
    st.markdown("<h2 style='text-align: center;'>My Profile</h2>", unsafe_allow_html=True)
    user = service.current_user
    if user.photo:
        st.image(user.photo, width=120)

    with st.form("profile_form"):
        st.write(f"**Email:** {user.email or 'N/A'}")
        st.write(f"**Role:** {ROLE_LABELS[user.role]}")
        name = st.text_input("Full Name", value=user.name)
        photo = st.text_input("Photo URL", value=user.photo or "")

        submitted = st.form_submit_button("Update Profile")
        if submitted:
            if not name:
                st.error("Full Name cannot be empty.")
            else:
                with st.spinner("Updating profile..."):
                    service.update_user({"name": name, "photo": photo})
                st.success("Profile updated successfully!")


def _render_board_meetings_page(service):
    """Renders the medical board meetings, a scheduling form and, for admins, delete buttons."""
    st.markdown("<h2 style='text-align: center;'>Medical Board Meetings</h2>", unsafe_allow_html=True)
    meetings = service.board_meetings
    if not meetings:
        st.info("No board meetings scheduled.")
    for meeting in meetings:
        with st.expander(f"**{meeting.title}** · {meeting.specialty} · {meeting.date} {meeting.time}"):
            st.write(f"**Participants:** {', '.join(meeting.participants) or 'None listed'}")
            if service.is_admin and st.button("Delete Meeting", key=f"delete_meeting_{meeting.id}"):
                service.delete_meeting(meeting.id)
                st.rerun()

    st.divider()
    st.subheader("Schedule a Meeting")
    with st.form("board_meeting_form"):
        title = st.text_input("Title")
        specialty = st.text_input("Specialty", placeholder="e.g. Cardiology")
        date = st.date_input("Date", value=datetime.date.today())
        meeting_time = st.time_input("Time", value=datetime.time(9, 0))
        participants = st.text_area("Participants (one per line)")
        submitted = st.form_submit_button("Schedule Meeting")

        if submitted:
            if not title or not specialty:
                st.error("Title and Specialty are required.")
            else:
                service.schedule_meeting({
                    "title": title,
                    "specialty": specialty,
                    "date": date.isoformat(),
                    "time": meeting_time.strftime("%I:%M %p"),
                    "participants": [p.strip() for p in participants.splitlines() if p.strip()],
                })
                st.success(f"'{title}' scheduled.")
                st.rerun()


def _render_schedule_page(service):
    """Renders the hospital schedule."""
    st.markdown("<h2 style='text-align: center;'>Today's Schedule</h2>", unsafe_allow_html=True)
    if not service.schedules:
        st.info("Nothing on the schedule.")
        return
    for item in service.schedules:
        patient = f" · {item.patient_name}" if item.patient_name else ""
        st.markdown(f"**{item.time}** - {item.title} ({_label(item.type)}){patient}")
        st.caption(item.location)


def _render_manual_admit_page(service):
    """Renders the manual admission form used by doctors and for admin patient registration."""
    st.markdown("<h2 style='text-align: center;'>Register / Admit Patient</h2>", unsafe_allow_html=True)
    with st.form("manual_admit_form"):
        name = st.text_input("Patient Name")
        patient_id = st.text_input("Patient ID (Optional)")
        dob = st.date_input("Date of Birth", value=None, min_value=datetime.date(1900, 1, 1))
        status = st.selectbox("Status", list(AdmissionStatus), format_func=_label)
        ward = st.text_input("Ward", value=ADMISSION_WARD)
        blood_type = st.selectbox("Blood Type", BLOOD_TYPES)
        allergies = st.text_input("Allergies", value="None known")
        submitted = st.form_submit_button("Admit Patient")

        if submitted:
            if not name or not ward:
                st.error("Patient Name and Ward are required.")
            else:
                inpatient = service.manual_admit({
                    "name": name,
                    "id": patient_id or None,
                    "dob": dob.isoformat() if dob else None,
                    "status": status,
                    "ward": ward,
                    "blood_type": blood_type,
                    "allergies": allergies,
                })
                st.success(f"{inpatient.patient_name} admitted to {inpatient.ward}.")


# Patient pages
def _render_book_appointment_page(service):
    """Renders the appointment booking form for patients."""
    st.markdown("<h2 style='text-align: center;'>Book an Appointment</h2>", unsafe_allow_html=True)
    with st.form("book_appointment_form"):
        title = st.text_input("Reason for Visit", placeholder="e.g. General check-up")
        appointment_type = st.selectbox("Type", [ScheduleType.CONSULTATION, ScheduleType.SURGERY], format_func=_label)
        appointment_time = st.time_input("Preferred Time", value=datetime.time(10, 0))
        location = st.text_input("Location", value="Outpatient Clinic")
        submitted = st.form_submit_button("Book Appointment")

        if submitted:
            if not title:
                st.error("Please describe the reason for your visit.")
            else:
                service.book_appointment({
                    "title": title,
                    "time": appointment_time.strftime("%I:%M %p"),
                    "type": appointment_type,
                    "location": location,
                    "patient_name": service.current_user.name,
                })
                st.success("Appointment booked.")


def _render_my_appointments_page(service):
    """Renders the appointments booked under the patient's name."""
    st.markdown("<h2 style='text-align: center;'>My Appointments</h2>", unsafe_allow_html=True)
    appointments = build_view_context(service).get('appointments', [])
    if not appointments:
        st.info("You have no upcoming appointments.")
        return
    for item in appointments:
        st.markdown(f"**{item.time}** - {item.title} ({_label(item.type)})")
        st.caption(item.location)


def _render_medical_record_page(service):
    """Renders the patient's own medical record with an edit form."""
    st.markdown("<h2 style='text-align: center;'>My Medical Record</h2>", unsafe_allow_html=True)
    user = service.current_user
    record = user.medical_record
    _render_medical_record(record)

    if record and record.medical_history:
        st.subheader("Medical History")
        for entry in record.medical_history:
            with st.expander(f"{entry.date} · {entry.event} ({entry.visit_type})"):
                st.write(entry.details)
    if record and record.prescriptions:
        st.subheader("Prescriptions")
        for prescription in record.prescriptions:
            st.write(f"**{prescription.medication}** · {prescription.dosage} · {_label(prescription.status)}")
            st.caption(f"Prescribed by {prescription.prescribed_by} on {_format_timestamp(prescription.date)}")

    st.divider()
    st.subheader("Update Record")
    with st.form("medical_record_form"):
        current_blood = record.blood_type if record else "Pending"
        blood_type = st.selectbox("Blood Type", BLOOD_TYPES,
                                  index=BLOOD_TYPES.index(current_blood) if current_blood in BLOOD_TYPES else len(BLOOD_TYPES) - 1)
        allergies = st.text_input("Allergies", value=record.allergies if record else "")
        conditions = st.text_area("Conditions", value=record.conditions if record else "")
        medications = st.text_area("Medications", value=record.medications if record else "")
        submitted = st.form_submit_button("Save Record")

        if submitted:
            if record:
                updated = replace(record, blood_type=blood_type, allergies=allergies, conditions=conditions,
                                  medications=medications, last_updated=now_iso())
            else:
                updated = MedicalRecord(blood_type=blood_type, allergies=allergies, conditions=conditions,
                                        medications=medications, last_updated=now_iso())
            service.update_user({"medical_record": updated})
            st.success("Medical record saved.")


def _render_pharmacy_page(service):
    """Renders the pharmacy availability list for patients."""
    st.markdown("<h2 style='text-align: center;'>Pharmacy</h2>", unsafe_allow_html=True)
    stock = build_view_context(service).get('pharmacy_stock', [])
    if not stock:
        st.info("The pharmacy catalog is empty.")
        return
    stock_df = pd.DataFrame([{
        "Medication": item.name,
        "Category": item.category,
        "Available": "✅ In stock" if item.available else "❌ Out of stock",
        "Last Restocked": _format_timestamp(item.last_restocked),
    } for item in stock])
    st.dataframe(stock_df, hide_index=True, use_container_width=True)


# Doctor and admin pages
def _render_alerts_page(service):
    """Renders the active emergency alerts. Doctors admit; admins can also delete."""
    st.markdown("<h2 style='text-align: center;'>Emergency Alerts</h2>", unsafe_allow_html=True)
    alerts = service.active_alerts
    if not alerts:
        st.success("No active emergencies.")
        return
    for alert in alerts:
        with st.expander(f"🚨 **{alert.patient_name}** · {alert.incident_type} · {_format_timestamp(alert.timestamp)}", expanded=True):
            st.write(f"**Age:** {alert.age or 'N/A'} | **Sex:** {alert.sex.value} | **Status:** {_label(alert.status)}")
            if alert.location:
                st.write(f"**Location:** {alert.location.lat:.5f}, {alert.location.lng:.5f}")
            if alert.patient_id == GUEST_PATIENT_ID:
                st.caption("Reported on behalf of an unregistered patient.")
            _render_medical_record(alert.medical_summary)
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Admit Patient", key=f"admit_{alert.id}", type="primary"):
                    inpatient = service.admit_patient(alert)
                    st.success(f"{inpatient.patient_name} is on the way to {inpatient.ward}.")
                    st.rerun()
            with col2:
                if service.is_admin and st.button("Dismiss Alert", key=f"delete_alert_{alert.id}"):
                    service.delete_emergency(alert.id)
                    st.rerun()


def _render_inpatients_page(service):
    """Renders the inpatient list with status updates, and record edits and removal for admins."""
    st.markdown("<h2 style='text-align: center;'>Inpatients</h2>", unsafe_allow_html=True)
    inpatients = service.inpatients
    if not inpatients:
        st.info("No patients are currently admitted.")
        return
    statuses = list(AdmissionStatus)
    for patient in inpatients:
        with st.expander(f"**{patient.patient_name}** · {patient.ward} · {_label(patient.status)}"):
            st.write(f"**Admitted:** {_format_timestamp(patient.admission_date)}")
            if patient.discharge_date:
                st.write(f"**Discharged:** {_format_timestamp(patient.discharge_date)}")
            if patient.dob:
                st.write(f"**Date of Birth:** {patient.dob}")
            st.write(f"**Attending Physician:** {patient.attending_physician}")
            _render_medical_record(patient.medical_summary)

            new_status = st.selectbox("Status", statuses, index=statuses.index(patient.status),
                                      format_func=_label, key=f"status_{patient.id}")
            if st.button("Update Status", key=f"update_status_{patient.id}"):
                service.update_inpatient_status(patient.id, new_status)
                st.rerun()

            if service.is_admin:
                with st.form(f"record_form_{patient.id}"):
                    summary = patient.medical_summary
                    blood_type = st.text_input("Blood Type", value=summary.blood_type)
                    allergies = st.text_input("Allergies", value=summary.allergies)
                    conditions = st.text_area("Conditions", value=summary.conditions)
                    medications = st.text_area("Medications", value=summary.medications)
                    if st.form_submit_button("Save Medical Summary"):
                        service.update_patient_record(patient.id, replace(
                            summary, blood_type=blood_type, allergies=allergies, conditions=conditions,
                            medications=medications, last_updated=now_iso()))
                        st.rerun()
                if st.button("Remove Inpatient", key=f"delete_inpatient_{patient.id}"):
                    service.delete_inpatient(patient.id)
                    st.rerun()


def _render_prescribe_page(service):
    """Renders the prescription form for doctors."""
    st.markdown("<h2 style='text-align: center;'>Prescribe Medication</h2>", unsafe_allow_html=True)
    available = [item.name for item in service.pharmacy_stock if item.available]
    with st.form("prescribe_form"):
        patient_name = st.text_input("Patient Name")
        medication = st.selectbox("Medication", available) if available else st.text_input("Medication")
        dosage = st.text_input("Dosage", placeholder="e.g. 500mg twice daily")
        submitted = st.form_submit_button("Send to Pharmacy")

        if submitted:
            if not patient_name or not medication or not dosage:
                st.error("Patient Name, Medication and Dosage are required.")
            else:
                prescription = service.prescribe(medication, dosage, patient_name=patient_name)
                st.success(f"{prescription.medication} ordered for {patient_name}.")


def _render_stock_page(service):
    """Renders the pharmacy stock editor. Saving replaces the whole catalog."""
    st.markdown("<h2 style='text-align: center;'>Pharmacy Stock</h2>", unsafe_allow_html=True)
    stock_df = pd.DataFrame(
        [item.to_dict() for item in service.pharmacy_stock],
        columns=["id", "name", "category", "available", "last_restocked"],
    )
    edited = st.data_editor(
        stock_df,
        key="stock_editor",
        num_rows="dynamic",
        disabled=["id", "last_restocked"],
        hide_index=True,
        use_container_width=True,
    )
    if st.button("Save Stock", type="primary"):
        new_stock = []
        for row in edited.to_dict(orient="records"):
            if pd.isna(row.get("name")) or not str(row["name"]).strip():
                continue
            new_stock.append(PharmacyItem(
                id=row["id"] if not pd.isna(row.get("id")) else generate_id(),
                name=str(row["name"]).strip(),
                category="" if pd.isna(row.get("category")) else str(row["category"]),
                available=bool(row.get("available")) if not pd.isna(row.get("available")) else False,
                last_restocked=row["last_restocked"] if not pd.isna(row.get("last_restocked")) else now_iso(),
            ))
        service.update_stock(new_stock)
        st.success(f"Pharmacy stock saved ({len(new_stock)} items).")


def _render_prescriptions_page(service):
    """Renders every prescription with a status control."""
    st.markdown("<h2 style='text-align: center;'>Prescriptions</h2>", unsafe_allow_html=True)
    prescriptions = service.prescriptions
    if not prescriptions:
        st.info("No prescriptions have been issued.")
        return
    statuses = list(PrescriptionStatus)
    for prescription in prescriptions:
        with st.expander(f"**{prescription.medication}** · {prescription.patient_name or 'Unknown patient'} · {_label(prescription.status)}"):
            st.write(f"**Dosage:** {prescription.dosage}")
            st.caption(f"Prescribed by {prescription.prescribed_by} on {_format_timestamp(prescription.date)}")
            new_status = st.selectbox("Status", statuses, index=statuses.index(prescription.status),
                                      format_func=_label, key=f"rx_status_{prescription.id}")
            if st.button("Update", key=f"rx_update_{prescription.id}"):
                service.update_prescription_status(prescription.id, new_status)
                st.rerun()


def _render_user_roles_page(service):
    """Renders the role management form. Only available with a remote store."""
    st.markdown("<h2 style='text-align: center;'>User Roles</h2>", unsafe_allow_html=True)
    if not service.is_remote:
        st.info("Role management needs a database connection.")
        return
    with st.form("user_role_form"):
        user_id = st.text_input("User ID")
        role = st.selectbox("New Role", list(UserRole), format_func=lambda r: ROLE_LABELS[r])
        submitted = st.form_submit_button("Change Role")

        if submitted:
            if not user_id:
                st.error("User ID is required.")
            elif service.update_user_role(user_id, role):
                st.success(f"User {user_id} is now a {ROLE_LABELS[role]}.")
            else:
                st.error("Only administrators can change roles.")


def _render_export_page(service):
    """Renders the data export page for administrators."""
    st.markdown("<h2 style='text-align: center;'>Data Export</h2>", unsafe_allow_html=True)
    context = build_view_context(service)
    collections = {
        key: [item.to_dict() for item in context.get(key, [])]
        for key in ("active_alerts", "inpatients", "schedules", "board_meetings", "pharmacy_stock", "prescriptions")
    }

    st.subheader("1. Export as Raw JSON")
    st.download_button(
        "Download Hospital Data (JSON)", json.dumps(collections, indent=4),
        f"mediportal_export_{datetime.date.today()}.json", "application/json"
    )
    st.divider()

    st.subheader("2. Export as CSV")
    for key, records in collections.items():
        if not records:
            st.caption(f"No {key.replace('_', ' ')} to export.")
            continue
        # Nested medical summaries are flattened into prefixed columns.
        df = pd.json_normalize(records)
        st.download_button(
            f"Download {key.replace('_', ' ').title()} (CSV)", df.to_csv(index=False).encode('utf-8'),
            f"mediportal_{key}_{datetime.date.today()}.csv", "text/csv", key=f"export_{key}"
        )


MENUS = {
    ViewState.PATIENT: ("Patient Hub", [
        ("Emergency SOS", "patient_sos", "Raise an emergency alert with your medical summary attached."),
        ("Book Appointment", "patient_book", "Request a consultation with the hospital."),
        ("My Appointments", "patient_appointments", "See the appointments booked under your name."),
        ("Medical Record", "patient_record", "Review and update your blood type, allergies and medications."),
        ("Pharmacy", "patient_pharmacy", "Check which medications are currently in stock."),
        ("My Profile", "patient_profile", "Update your name and photo."),
    ]),
    ViewState.DOCTOR: ("Doctor Dashboard", [
        ("Emergency Alerts", "doctor_alerts", "Review incoming emergencies and admit patients."),
        ("Inpatients", "doctor_inpatients", "Track admitted patients and update their status."),
        ("Manual Admission", "doctor_admit", "Admit a patient who arrived without an alert."),
        ("Schedule", "doctor_schedule", "See today's surgeries, consultations and rounds."),
        ("Board Meetings", "doctor_board", "Schedule and review medical board meetings."),
        ("Prescribe", "doctor_prescribe", "Send a prescription to the pharmacy."),
        ("Raise Emergency", "doctor_sos", "Report an emergency on behalf of a patient."),
        ("My Profile", "doctor_profile", "Update your name and photo."),
    ]),
    ViewState.ADMIN: ("Admin Console", [
        ("Emergency Alerts", "admin_alerts", "Dismiss or admit active emergencies."),
        ("Inpatients", "admin_inpatients", "Manage admissions, medical summaries and discharges."),
        ("Register Patient", "admin_register", "Register and admit a patient manually."),
        ("Board Meetings", "admin_board", "Schedule and cancel medical board meetings."),
        ("Pharmacy Stock", "admin_stock", "Edit the pharmacy catalog and availability."),
        ("Prescriptions", "admin_prescriptions", "Approve prescriptions and mark them ready for pickup."),
        ("User Roles", "admin_roles", "Change the role of a registered user."),
        ("Data Export", "admin_export", "Download hospital data as JSON or CSV."),
        ("Raise Emergency", "admin_sos", "Report an emergency on behalf of a patient."),
        ("My Profile", "admin_profile", "Maintain your administrator account details."),
    ]),
}

PAGES = {
    "patient_sos": _render_sos_page,
    "patient_book": _render_book_appointment_page,
    "patient_appointments": _render_my_appointments_page,
    "patient_record": _render_medical_record_page,
    "patient_pharmacy": _render_pharmacy_page,
    "patient_profile": _render_profile_page,
    "doctor_alerts": _render_alerts_page,
    "doctor_inpatients": _render_inpatients_page,
    "doctor_admit": _render_manual_admit_page,
    "doctor_schedule": _render_schedule_page,
    "doctor_board": _render_board_meetings_page,
    "doctor_prescribe": _render_prescribe_page,
    "doctor_sos": _render_sos_page,
    "doctor_profile": _render_profile_page,
    "admin_alerts": _render_alerts_page,
    "admin_inpatients": _render_inpatients_page,
    "admin_register": _render_manual_admit_page,
    "admin_board": _render_board_meetings_page,
    "admin_stock": _render_stock_page,
    "admin_prescriptions": _render_prescriptions_page,
    "admin_roles": _render_user_roles_page,
    "admin_export": _render_export_page,
    "admin_sos": _render_sos_page,
    "admin_profile": _render_profile_page,
}
