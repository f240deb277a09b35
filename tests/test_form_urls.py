from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest

from core.errors import FormDataError
from core.form_urls import (
    build_prefilled_url,
    determine_billing_code,
    determine_session_location,
    infer_appointment_type,
    therapist_name_from_email,
    validate_client,
)
from models.client import Client
from models.session_context import SessionContext


@pytest.fixture
def john(directory):
    return directory.get_client_by_id("C001")


def _query(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


def test_basic_fields_are_encoded(config, john) -> None:
    config["form"]["form_id"] = "abc123"
    url = build_prefilled_url(SessionContext(client=john, goal="Sleep & rest"), config)

    assert url.startswith("https://docs.google.com/forms/d/abc123/formResponse?")
    assert "entry.123456789=John%20Doe" in url
    assert "Sleep%20%26%20rest" in url

    query = _query(url)
    assert query["entry.987654321"] == "C001"
    assert query["entry.456789123"] == "Sleep & rest"
    assert query["entry.666666666"] == "john@example.com"
    assert query["entry.888888888"] == "Aetna"


def test_appointment_fields(config, john, make_appointment) -> None:
    appointment = make_appointment("Therapy - John Doe", start=datetime(2026, 3, 2, 14, 0), location="Zoom link")
    context = SessionContext(client=john, goal="Improve sleep", appointment=appointment, session_id="S-1")

    query = _query(build_prefilled_url(context, config, {"last_session_date": "2026-02-23"}))

    assert query["entry.202020202"] == "S-1"
    assert query["entry.111111111"] == "2026-03-02"
    assert query["entry.222222222"] == "2:00 PM"
    assert query["entry.333333333"] == "2:50 PM"
    assert query["entry.444444444"] == "50 minutes"
    assert query["entry.999999999"] == "Telehealth"
    assert query["entry.101010101"] == "Follow-up"
    assert query["entry.121212121"] == "2026-02-23"
    assert query["entry.191919191"] == "90834"


def test_unmapped_and_empty_fields_are_skipped(config, directory) -> None:
    jane = directory.get_client_by_id("C002")
    del config["field_mappings"]["Client_ID"]

    query = _query(build_prefilled_url(SessionContext(client=jane, goal="Walk daily"), config))

    assert "entry.987654321" not in query
    assert "entry.666666666" not in query
    assert "entry.171717171" not in query


def test_therapist_name_from_config(config, john) -> None:
    config["form"]["therapist_email"] = "mary_ann.jones@clinic.org"
    query = _query(build_prefilled_url(SessionContext(client=john, goal="Improve sleep"), config))
    assert query["entry.171717171"] == "Mary Ann Jones"


def test_invalid_session_data_raises(config, john) -> None:
    with pytest.raises(FormDataError):
        build_prefilled_url(SessionContext(client=john, goal="  "), config)
    with pytest.raises(FormDataError):
        build_prefilled_url(SessionContext(client=Client(client_id="C9"), goal="Goal"), config)
    with pytest.raises(FormDataError):
        build_prefilled_url({"client": john, "goal": "Goal"}, config)


def test_validate_client() -> None:
    assert validate_client(Client(client_id="C001", name="John"))
    assert not validate_client(Client(client_id=" ", name="John"))
    assert not validate_client({"client_id": "C001", "name": "John"})


def test_session_location() -> None:
    assert determine_session_location(None) == "In-Person"
    assert determine_session_location("Teams meeting") == "Telehealth"
    assert determine_session_location("Phone call") == "Phone"
    assert determine_session_location("Room 4") == "In-Person"


def test_appointment_type(make_appointment) -> None:
    assert infer_appointment_type(make_appointment("Intake - John Doe"), "2026-01-01") == "Initial"
    assert infer_appointment_type(make_appointment("Crisis session")) == "Crisis"
    assert infer_appointment_type(make_appointment("Couple therapy")) == "Family/Couple"
    assert infer_appointment_type(make_appointment("Group therapy")) == "Group"
    assert infer_appointment_type(make_appointment("Therapy - John Doe")) == "Initial"
    assert infer_appointment_type(make_appointment("Therapy - John Doe"), "2026-01-01") == "Follow-up"


def test_billing_code_by_duration(make_appointment) -> None:
    assert determine_billing_code(make_appointment("Therapy", minutes=30)) == "90834"
    assert determine_billing_code(make_appointment("Therapy", minutes=45)) == "90837"
    assert determine_billing_code(make_appointment("Therapy", minutes=60)) == "90834"
    assert determine_billing_code(make_appointment("Therapy", minutes=90)) == "90837"


def test_therapist_name() -> None:
    assert therapist_name_from_email("jane.smith@clinic.org") == "Jane Smith"
    assert therapist_name_from_email("") == ""
