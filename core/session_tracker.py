import logging
import random
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from core import delimited_list
from models.appointment import Appointment
from models.client import Client
from models.match_result import MatchResult
from models.session_record import SessionRecord, SessionStatus

logger = logging.getLogger(__name__)

SESSION_COLUMNS = [
    "Session_ID", "Date", "Client_ID", "Client_Name", "Goals_Selected",
    "Appointment_ID", "Form_ID", "Form_URL", "Form_Response_ID", "Status",
    "Created_Date", "Last_Updated", "Notes",
]

# Keyword arguments accepted by update_session_status, by sheet column
_UPDATABLE_FIELDS = {
    "Form_Response_ID": "form_response_id",
    "Form_URL": "form_url",
    "Goals_Selected": "goals_selected",
    "Notes": "notes",
}


def to_session_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Normalise anything date-like to a calendar date; None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return pd.to_datetime(str(value)).date()
    except (ValueError, TypeError):
        return None


def generate_session_id() -> str:
    now = datetime.now()
    return f"S-{now.strftime('%Y%m%d-%H%M%S')}-{random.randint(0, 999):03d}"


class SessionTracker:
    """Tracks documentation status per client per session date."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, sessions: Optional[List[SessionRecord]] = None):
        self.config = config or {}
        self.sessions: List[SessionRecord] = list(sessions or [])

    def _find(self, session_date: date, client_id: str) -> Optional[SessionRecord]:
        for session in self.sessions:
            if session.session_date == session_date and session.client_id == str(client_id):
                return session
        return None

    def _new_session_id(self) -> str:
        existing = {s.session_id for s in self.sessions}
        session_id = generate_session_id()
        while session_id in existing:
            session_id = generate_session_id()
        return session_id

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return next((s for s in self.sessions if s.session_id == str(session_id)), None)

    def get_session_for_appointment(self, appointment_id: str) -> Optional[SessionRecord]:
        return next((s for s in self.sessions if s.appointment_id and s.appointment_id == appointment_id), None)

    def get_session_status(self, session_date: Any, client_id: Any) -> SessionStatus:
        day = to_session_date(session_date)
        if day is None or not client_id:
            return SessionStatus.NOT_STARTED
        session = self._find(day, str(client_id))
        return session.status if session else SessionStatus.NOT_STARTED

    def create_or_update_session(self,
                                 session_date: Any,
                                 client_id: str,
                                 client_name: str = "",
                                 goals_selected: str = "",
                                 appointment_id: Optional[str] = None,
                                 form_id: str = "",
                                 form_url: str = "",
                                 form_response_id: str = "",
                                 status: SessionStatus = SessionStatus.IN_PROGRESS,
                                 notes: str = "") -> Optional[str]:
        """One record per (date, client); an existing record keeps its id and creation time."""
        day = to_session_date(session_date)
        if day is None or not client_id:
            logger.warning("Session date and client ID are required")
            return None

        now = datetime.now()
        existing = self._find(day, str(client_id))
        record = SessionRecord(
            session_id=existing.session_id if existing else self._new_session_id(),
            session_date=day,
            client_id=str(client_id),
            client_name=client_name,
            goals_selected=goals_selected,
            appointment_id=appointment_id,
            form_id=form_id,
            form_url=form_url,
            form_response_id=form_response_id,
            status=SessionStatus(status),
            created_date=existing.created_date if existing else now,
            last_updated=now,
            notes=notes,
        )

        if existing:
            self.sessions[self.sessions.index(existing)] = record
            logger.info(f"Updated session: {record.session_id}")
        else:
            self.sessions.append(record)
            logger.info(f"Created session: {record.session_id}")

        return record.session_id

    def update_session_status(self, session_id: Any, status: Union[SessionStatus, str], **fields: Any) -> bool:
        """Set status (and optional sheet columns such as Form_Response_ID, Notes)."""
        if not session_id or not status:
            return False

        session = self.get_session(session_id)
        if session is None:
            return False

        updates: Dict[str, Any] = {"status": SessionStatus(status), "last_updated": datetime.now()}
        for column, value in fields.items():
            attribute = _UPDATABLE_FIELDS.get(column)
            if attribute:
                updates[attribute] = "" if value is None else str(value)

        self.sessions[self.sessions.index(session)] = session.model_copy(update=updates)
        logger.info(f"Updated session status: {session_id} -> {SessionStatus(status).value}")
        return True

    def mark_session_in_progress(self,
                                 appointment: Optional[Appointment],
                                 client: Client,
                                 goal: str = "",
                                 form_url: str = "") -> Optional[str]:
        session_date = appointment.start_time if appointment else datetime.now()
        return self.create_or_update_session(
            session_date=session_date,
            client_id=client.client_id,
            client_name=client.name,
            goals_selected=delimited_list.serialize([goal]),
            appointment_id=appointment.appointment_id if appointment else None,
            form_id=self.config.get("form", {}).get("form_id", ""),
            form_url=form_url,
            status=SessionStatus.IN_PROGRESS,
        )

    def delete_session(self, session_id: Any) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        self.sessions.remove(session)
        logger.info(f"Deleted session: {session_id}")
        return True

    def get_client_sessions(self, client_id: str, limit: int = 50) -> List[SessionRecord]:
        if not client_id:
            return []
        sessions = [s for s in self.sessions if s.client_id == str(client_id)]
        return sorted(sessions, key=lambda s: s.session_date, reverse=True)[:limit]

    def get_sessions_by_date_range(self, start_date: Any, end_date: Any) -> List[SessionRecord]:
        start = to_session_date(start_date)
        end = to_session_date(end_date)
        if start is None or end is None:
            return []
        return [s for s in self.sessions if start <= s.session_date <= end]

    def get_session_statistics(self, start_date: Any = None, end_date: Any = None) -> Dict[str, Any]:
        if start_date and end_date:
            sessions = self.get_sessions_by_date_range(start_date, end_date)
        else:
            sessions = list(self.sessions)

        stats = {
            "total_sessions": len(sessions),
            "completed_sessions": 0,
            "in_progress_sessions": 0,
            "not_started_sessions": 0,
            "unique_clients": 0,
            "avg_sessions_per_client": 0.0,
            "most_active_client": None,
            "recent_activity": [],
        }

        client_counts: Dict[str, int] = {}
        recent_cutoff = date.today() - timedelta(days=7)

        for session in sessions:
            if session.status == SessionStatus.COMPLETED:
                stats["completed_sessions"] += 1
            elif session.status == SessionStatus.IN_PROGRESS:
                stats["in_progress_sessions"] += 1
            else:
                stats["not_started_sessions"] += 1

            client_counts[session.client_id] = client_counts.get(session.client_id, 0) + 1

            if session.session_date >= recent_cutoff:
                stats["recent_activity"].append({
                    "date": session.session_date,
                    "client_id": session.client_id,
                    "client_name": session.client_name,
                    "status": session.status.value,
                })

        stats["unique_clients"] = len(client_counts)
        if client_counts:
            stats["avg_sessions_per_client"] = round(len(sessions) / len(client_counts), 2)
            busiest = max(client_counts, key=client_counts.get)
            stats["most_active_client"] = {"client_id": busiest, "session_count": client_counts[busiest]}

        return stats

    def get_prefill_data(self, client_id: str) -> Dict[str, Any]:
        """Values carried forward from the client's previous sessions."""
        previous = self.get_client_sessions(client_id, limit=1)
        if not previous:
            return {}

        last = previous[0]
        return {
            "last_session_date": last.session_date.isoformat(),
            "previous_goals": delimited_list.parse(last.goals_selected),
            "last_status": last.status.value,
        }

    def annotate_appointments(self, match_results: List[MatchResult]) -> List[MatchResult]:
        """Attach documentation status to matched appointments."""
        annotated = []
        for result in match_results:
            session = None
            if result.appointment is not None:
                session = self.get_session_for_appointment(result.appointment.appointment_id)
                if session is None and result.client is not None:
                    session = self._find(result.appointment.start_time.date(), result.client.client_id)

            annotated.append(result.model_copy(update={
                "documentation_status": session.status if session else SessionStatus.NOT_STARTED,
                "session_id": session.session_id if session else None,
            }))
        return annotated

    def to_dataframe(self, sessions: Optional[List[SessionRecord]] = None) -> pd.DataFrame:
        if sessions is None:
            sessions = self.sessions
        rows = [
            {
                "Session_ID": s.session_id,
                "Date": s.session_date.isoformat(),
                "Client_ID": s.client_id,
                "Client_Name": s.client_name,
                "Goals_Selected": s.goals_selected,
                "Appointment_ID": s.appointment_id or "",
                "Form_ID": s.form_id,
                "Form_URL": s.form_url,
                "Form_Response_ID": s.form_response_id,
                "Status": s.status.value,
                "Created_Date": s.created_date.isoformat(),
                "Last_Updated": s.last_updated.isoformat(),
                "Notes": s.notes,
            }
            for s in sessions
        ]
        return pd.DataFrame(rows, columns=SESSION_COLUMNS)

    @classmethod
    def load_csv(cls, source_path: str, config: Optional[Dict[str, Any]] = None) -> "SessionTracker":
        """Load session records from the sessions sheet; bad rows are skipped."""
        tracker = cls(config)
        if not Path(source_path).exists():
            return tracker

        df = pd.read_csv(source_path, dtype=str, keep_default_na=False)
        for idx, row in df.iterrows():
            try:
                session_date = to_session_date(row.get("Date"))
                if session_date is None:
                    continue
                now = datetime.now()
                tracker.sessions.append(SessionRecord(
                    session_id=row["Session_ID"],
                    session_date=session_date,
                    client_id=row["Client_ID"],
                    client_name=row.get("Client_Name", ""),
                    goals_selected=row.get("Goals_Selected", ""),
                    appointment_id=row.get("Appointment_ID") or None,
                    form_id=row.get("Form_ID", ""),
                    form_url=row.get("Form_URL", ""),
                    form_response_id=row.get("Form_Response_ID", ""),
                    status=SessionStatus(row.get("Status") or SessionStatus.NOT_STARTED.value),
                    created_date=pd.to_datetime(row.get("Created_Date") or now).to_pydatetime(),
                    last_updated=pd.to_datetime(row.get("Last_Updated") or now).to_pydatetime(),
                    notes=row.get("Notes", ""),
                ))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping session row {idx + 2}: {e}")
                continue
        return tracker

    def save(self, output_path: str) -> str:
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(target, index=False)
        return str(target)
