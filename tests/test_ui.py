"""
UI tests for the MediPortal application using Streamlit's AppTest framework.

These tests simulate user interactions with the frontend to verify that the GUI behaves as
expected: navigation between the authentication pages, the offline demo login, the
role-specific dashboards and forms that call into the service.
"""
from streamlit.testing.v1 import AppTest

from mediportal.models import UserRole


def test_ui_welcome_page_buttons():
    """
    Tests the navigation buttons on the welcome page.

    Verifies that clicking the 'Login' and 'Register' buttons correctly
    updates the `auth_page` session state to navigate to the respective forms.
    """
    def render():
        import gui as gui_module

        gui_module.show_welcome_page()

    app = AppTest.from_function(render, default_timeout=15)
    app.session_state["auth_page"] = "welcome"
    app.run()
    assert any("Welcome to MediPortal" in md.value for md in app.markdown)

    app.button[0].click().run()
    assert app.session_state["auth_page"] == "login"

    app.session_state["auth_page"] = "welcome"
    app.button[1].click().run()
    assert app.session_state["auth_page"] == "register"


def test_ui_offline_demo_login(service):
    """
    Tests that the offline login form opens a demo session for the chosen role.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_login_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.session_state["auth_page"] = "login"
    app.run()

    buttons = {btn.label: btn for btn in app.button}
    buttons["Login"].click().run()
    assert any("Full Name is required" in err.value for err in app.error)
    assert service.current_user is None

    app.text_input[0].input("Sarah Jenkins")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Login"].click().run()

    assert service.current_user.name == "Sarah Jenkins"
    assert service.current_user.role == UserRole.PATIENT
    assert service.current_user.medical_record is not None


def test_ui_registration_needs_database(service):
    """
    Tests that the registration page explains that offline mode has no accounts.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_register_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()
    assert any("needs a database connection" in info.value for info in app.info)


def test_ui_registration_validation(remote_service):
    """
    Tests the input validation on the registration form.

    Verifies that submitting the form with a weak password displays the
    appropriate error message to the user.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_register_form(svc)

    app = AppTest.from_function(render, args=(remote_service,), default_timeout=15)
    app.run()

    app.text_input[0].input("Test User")
    app.text_input[1].input("tester@x.test")
    app.text_input[2].input("weak")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Register"].click().run()

    assert any("Password must be at least 8 characters" in err.value for err in app.error)
    assert remote_service.current_user is None


def test_ui_main_dashboard_render(service, admin):
    """
    Tests that the main application dashboard renders correctly for a logged-in admin.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    service.login(admin)
    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()

    markdown_values = [md.value for md in app.markdown]
    assert any("Admin Console" in value for value in markdown_values)
    labels = [btn.label for btn in app.button]
    assert "Pharmacy Stock" in labels and "Data Export" in labels and "Log Out" in labels


def test_ui_patient_hub_shows_alert_free_menu(service, patient):
    """
    Tests that patients get the Patient Hub and none of the clinical pages.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    service.login(patient)
    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()

    assert any("Patient Hub" in md.value for md in app.markdown)
    labels = [btn.label for btn in app.button]
    assert "Emergency SOS" in labels
    assert "Emergency Alerts" not in labels


def test_ui_patient_sos_creates_alert(service, patient):
    """
    Tests that submitting the SOS form raises an emergency alert with the patient's record.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    service.login(patient)
    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.session_state["page"] = "patient_sos"
    app.session_state["current_role"] = UserRole.PATIENT
    app.run()

    app.text_input[1].input("34")
    app.text_input[2].input("Chest pain")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Send SOS"].click().run()

    assert len(service.active_alerts) == 1
    alert = service.active_alerts[0]
    assert alert.patient_id == patient.id
    assert alert.incident_type == "Chest pain"
    assert alert.medical_summary == patient.medical_record
    assert any("Emergency alert sent" in s.value for s in app.success)


def test_ui_logout_returns_to_welcome(service, doctor):
    """
    Tests that the Log Out button ends the session.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    service.login(doctor)
    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()
    assert any("Doctor Dashboard" in md.value for md in app.markdown)

    buttons = {btn.label: btn for btn in app.button}
    buttons["Log Out"].click().run()
    assert service.current_user is None
    assert app.session_state["auth_page"] == "welcome"
