from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionRecord(BaseModel):
    """Documentation record for one client on one session date."""
    
    session_id: str
    session_date: date
    client_id: str
    client_name: str = ""
    goals_selected: str = ""  # pipe-delimited
    appointment_id: Optional[str] = None
    form_id: str = ""
    form_url: str = ""
    form_response_id: str = ""
    status: SessionStatus = SessionStatus.IN_PROGRESS
    created_date: datetime
    last_updated: datetime
    notes: str = ""
