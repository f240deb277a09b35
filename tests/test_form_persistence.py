from datetime import date, datetime, timedelta

import pytest

from core.form_persistence import FormResponseProcessor
from core.session_tracker import SessionTracker
from models.session_record import SessionStatus


@pytest.fixture
def tracker():
    return SessionTracker()


@pytest.fixture
def processor(config, directory, tracker):
    return FormResponseProcessor(config, directory, tracker)


def test_replace_and_append_fields(processor, directory) -> None:
    today = datetime.now().strftime("%Y-%m-%d")
    response = {
        "id": "resp-1",
        "entry.987654321": "C002",
        "entry.666666666": "jane@example.com",
        "entry.131313131": "Allergy",
        "entry.987321654": "Good session",
    }

    assert processor.process_form_response(response)

    jane = directory.get_client_by_id("C002")
    assert jane.email == "jane@example.com"
    assert jane.field("Medical_History") == f"Asthma|[{today}] Allergy"
    assert jane.field("Session_History") == f"[{today}] Good session"


def test_repeated_append_values_are_kept(processor, directory) -> None:
    response = {"id": "resp-1", "entry.987654321": "C002", "entry.131313131": "Allergy"}

    processor.process_form_response(response)
    processor.process_form_response(response)

    assert len(directory.get_client_by_id("C002").field("Medical_History").split("|")) == 3


def test_client_resolved_by_name(processor, directory) -> None:
    response = {"id": "resp-2", "entry.123456789": "jane smith", "entry.666666666": "js@example.com"}

    assert processor.extract_client_id(response) == "C002"
    assert processor.process_form_response(response)
    assert directory.get_client_by_id("C002").email == "js@example.com"


def test_client_id_in_any_case(processor, directory) -> None:
    response = {"id": "resp-6", "entry.987654321": "c002", "entry.777777777": "555-0303"}

    assert processor.extract_client_id(response) == "C002"
    assert processor.process_form_response(response)
    assert directory.get_client_by_id("C002").phone == "555-0303"
    assert processor.processing_log[-1].client_id == "C002"


def test_session_marked_completed(processor, tracker) -> None:
    session_id = tracker.create_or_update_session(date(2026, 3, 2), "C001", "John Doe")
    response = {
        "id": "resp-3",
        "entry.987654321": "C001",
        "entry.202020202": session_id,
        "entry.987321654": "Practised breathing",
    }

    assert processor.process_form_response(response)

    session = tracker.get_session(session_id)
    assert session.status == SessionStatus.COMPLETED
    assert session.form_response_id == "resp-3"
    assert session.notes == "Practised breathing"


def test_unidentified_client_fails_and_is_logged(processor) -> None:
    assert not processor.process_form_response({"id": "resp-4", "entry.123456789": "Nobody"})
    assert not processor.process_form_response({"id": "resp-5", "entry.987654321": "C999", "entry.666666666": "x@example.com"})
    assert not processor.process_form_response(None)
    assert not processor.process_form_response({})

    entries = processor.processing_log
    assert [entry.success for entry in entries] == [False, False]
    assert entries[0].client_id == "unknown"
    assert entries[1].client_id == "C999"


def test_split_updates_by_policy(processor) -> None:
    replace_data, append_data = processor.split_updates({
        "entry.777777777": "555-0199",
        "entry.456789123": "Walk daily",
        "entry.131313131": "Allergy",
        "entry.888888888": "",
    })

    assert replace_data == {"Phone": "555-0199"}
    assert append_data == {"Medical_History": "Allergy"}


def test_processing_statistics(processor) -> None:
    processor.process_responses([
        {"id": "a", "entry.987654321": "C001"},
        {"id": "b", "entry.987654321": "C002"},
        {"id": "c", "entry.123456789": "Nobody"},
    ])

    stats = processor.get_processing_statistics()
    assert stats == {"total_processed": 3, "successful_processed": 2, "failed_processed": 1, "success_rate": 67}

    future = datetime.now() + timedelta(days=1)
    assert processor.get_processing_statistics(start_date=future)["total_processed"] == 0
