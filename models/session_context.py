from typing import Optional

from pydantic import BaseModel

from models.appointment import Appointment
from models.client import Client


class SessionContext(BaseModel):
    """Client, goal and (optionally) calendar appointment chosen for a session."""
    
    client: Client
    goal: str
    appointment: Optional[Appointment] = None
    session_id: Optional[str] = None
    form_url: str = ""
