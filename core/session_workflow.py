import logging
from typing import Any, Dict, List, Optional

from core.appointment_matcher import AppointmentMatcher
from core.errors import WorkflowError
from core.form_urls import build_prefilled_url
from core.goal_manager import GoalManager
from core.session_tracker import SessionTracker
from models.appointment import Appointment
from models.match_result import MatchResult
from models.session_context import SessionContext
from models.session_record import SessionStatus

logger = logging.getLogger(__name__)


class SessionWorkflow:
    """
    Two-step session start: pick the appointment's client, then one of the
    client's goals. Starting the session returns the pre-populated form URL
    and marks the session in progress.
    """

    def __init__(self,
                 config: Dict[str, Any],
                 matcher: AppointmentMatcher,
                 goal_manager: GoalManager,
                 session_tracker: SessionTracker):
        self.config = config
        self.matcher = matcher
        self.goal_manager = goal_manager
        self.session_tracker = session_tracker

    def load_appointments(self, appointments: List[Appointment]) -> List[MatchResult]:
        results = self.matcher.bulk_match_appointments(appointments)
        return self.session_tracker.annotate_appointments(results)

    def select_client_for_appointment(self, result: MatchResult, client_id: str) -> MatchResult:
        client = self.matcher.client_directory.get_client_by_id(client_id)
        if client is None:
            raise WorkflowError(f"Client not found: {client_id}")
        return self.matcher.link_client(result, client)

    def goals_for(self, result: MatchResult) -> List[str]:
        if result.client is None:
            raise WorkflowError("Select a client for this appointment first")
        return self.goal_manager.get_goals(result.client.client_id)

    def start_session(self, result: MatchResult, goal: Optional[str]) -> SessionContext:
        if result.client is None:
            raise WorkflowError("Select a client for this appointment first")
        if not goal or not goal.strip():
            raise WorkflowError("Select a goal for this session")

        client = result.client
        # Read history before this session is recorded
        prefill = self.session_tracker.get_prefill_data(client.client_id)

        session_id = self.session_tracker.mark_session_in_progress(result.appointment, client, goal.strip())
        context = SessionContext(
            client=client,
            goal=goal.strip(),
            appointment=result.appointment,
            session_id=session_id,
        )

        form_url = build_prefilled_url(context, self.config, prefill)
        if session_id:
            self.session_tracker.update_session_status(session_id, SessionStatus.IN_PROGRESS, Form_URL=form_url)

        logger.info(f"Started session {session_id} for client {client.client_id}")
        return context.model_copy(update={"form_url": form_url})
