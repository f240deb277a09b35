from datetime import datetime

from core.title_parser import (
    extract_client_from_title,
    format_time_range,
    generate_event_id,
    is_session_event,
)


def test_extracts_id_and_name_from_keyword_title() -> None:
    extracted = extract_client_from_title("Therapy Session - John Doe (C001)")
    assert extracted.client_id == "C001"
    assert extracted.name == "John Doe"


def test_extracts_name_before_trailing_keyword() -> None:
    assert extract_client_from_title("John Doe - Therapy").name == "John Doe"


def test_keywords_are_case_insensitive() -> None:
    assert extract_client_from_title("COUNSELING - Maria Lopez").name == "Maria Lopez"


def test_lowercase_identifier_is_not_extracted() -> None:
    extracted = extract_client_from_title("Jane Smith (c001)")
    assert extracted.client_id == ""
    assert extracted.name == "Jane Smith"


def test_title_of_only_keywords_falls_back_to_title() -> None:
    assert extract_client_from_title("Therapy").name == "Therapy"


def test_non_string_title_gives_empty_fields() -> None:
    assert extract_client_from_title(None) == ("", "")
    assert extract_client_from_title(17) == ("", "")


def test_session_event_requires_keyword_and_business_hours() -> None:
    morning = datetime(2026, 3, 2, 10, 0)
    evening = datetime(2026, 3, 2, 19, 0)

    assert is_session_event("Therapy - Jane", "", morning, False, {})
    assert is_session_event("Jane Smith", "weekly session", morning, False, {})
    assert not is_session_event("Dentist", "", morning, False, {})
    assert not is_session_event("Therapy - Jane", "", evening, False, {})
    assert not is_session_event("Therapy - Jane", "", morning, True, {})


def test_session_event_uses_configured_keywords_and_hours() -> None:
    config = {"session_keywords": ["review"], "start_hour": 6, "end_hour": 20}
    early = datetime(2026, 3, 2, 7, 0)

    assert is_session_event("Plan review", "", early, False, config)
    assert not is_session_event("Therapy - Jane", "", early, False, config)


def test_format_time_range() -> None:
    start = datetime(2026, 3, 2, 9, 0)
    end = datetime(2026, 3, 2, 9, 50)
    assert format_time_range(start, end) == "9:00 AM - 9:50 AM"
    assert format_time_range(datetime(2026, 3, 2, 12, 30), datetime(2026, 3, 2, 13, 20)) == "12:30 PM - 1:20 PM"


def test_generated_event_id_is_stable() -> None:
    start = datetime(2026, 3, 2, 9, 0)
    first = generate_event_id(start, "Therapy - Jane")
    assert first == generate_event_id(start, "Therapy - Jane")
    assert first != generate_event_id(start, "Therapy - John")
    assert first.startswith("generated_")
