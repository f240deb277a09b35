from urllib.parse import parse_qs, urlparse

import pytest

from core.appointment_matcher import AppointmentMatcher
from core.errors import WorkflowError
from core.form_persistence import FormResponseProcessor
from core.goal_manager import GoalManager
from core.session_tracker import SessionTracker
from core.session_workflow import SessionWorkflow
from models.match_result import Confidence
from models.session_record import SessionStatus


@pytest.fixture
def workflow(config, directory):
    return SessionWorkflow(
        config,
        AppointmentMatcher(config, directory),
        GoalManager(directory, config),
        SessionTracker(config),
    )


def test_load_appointments_matches_and_annotates(workflow, make_appointment) -> None:
    results = workflow.load_appointments([
        make_appointment("Therapy - John Doe"),
        make_appointment("Therapy - Nobody"),
    ])

    assert results[0].client_id == "C001"
    assert results[0].documentation_status == SessionStatus.NOT_STARTED
    assert results[1].confidence == Confidence.NONE


def test_goals_for_matched_client(workflow, make_appointment) -> None:
    result = workflow.load_appointments([make_appointment("Therapy - John Doe")])[0]
    assert workflow.goals_for(result) == ["Reduce anxiety", "Improve sleep"]


def test_manual_client_selection(workflow, make_appointment) -> None:
    result = workflow.load_appointments([make_appointment("Therapy - Nobody")])[0]

    with pytest.raises(WorkflowError):
        workflow.goals_for(result)

    linked = workflow.select_client_for_appointment(result, "C002")
    assert linked.client_id == "C002"
    assert linked.match_method == "manual"
    assert linked.confidence == Confidence.LOW

    with pytest.raises(WorkflowError):
        workflow.select_client_for_appointment(result, "C999")


def test_start_session_builds_form_and_marks_in_progress(workflow, make_appointment) -> None:
    result = workflow.load_appointments([make_appointment("Therapy - John Doe", appointment_id="evt-7")])[0]

    context = workflow.start_session(result, " Improve sleep ")

    assert context.goal == "Improve sleep"
    assert context.session_id
    query = {key: values[0] for key, values in parse_qs(urlparse(context.form_url).query).items()}
    assert query["entry.202020202"] == context.session_id
    assert query["entry.456789123"] == "Improve sleep"

    session = workflow.session_tracker.get_session(context.session_id)
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.appointment_id == "evt-7"
    assert session.form_url == context.form_url

    annotated = workflow.load_appointments([make_appointment("Therapy - John Doe", appointment_id="evt-7")])[0]
    assert annotated.documentation_status == SessionStatus.IN_PROGRESS
    assert annotated.session_id == context.session_id


def test_start_session_requires_client_and_goal(workflow, make_appointment) -> None:
    unmatched = workflow.load_appointments([make_appointment("Therapy - Nobody")])[0]
    matched = workflow.load_appointments([make_appointment("Therapy - John Doe")])[0]

    with pytest.raises(WorkflowError):
        workflow.start_session(unmatched, "Improve sleep")
    with pytest.raises(WorkflowError):
        workflow.start_session(matched, "  ")
    assert workflow.session_tracker.sessions == []


def test_submitted_session_form_leaves_goals_unchanged(workflow, make_appointment, config, directory) -> None:
    result = workflow.load_appointments([make_appointment("Therapy - John Doe", appointment_id="evt-8")])[0]
    context = workflow.start_session(result, "Reduce anxiety")

    response = {key: values[0] for key, values in parse_qs(urlparse(context.form_url).query).items()}
    response["id"] = "resp-8"
    processor = FormResponseProcessor(config, directory, workflow.session_tracker)

    assert processor.process_form_response(response)
    assert directory.get_client_goals("C001") == ["Reduce anxiety", "Improve sleep"]
    assert workflow.goals_for(result) == ["Reduce anxiety", "Improve sleep"]
    assert workflow.session_tracker.get_session(context.session_id).status == SessionStatus.COMPLETED
