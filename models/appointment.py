from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class Appointment(BaseModel):
    """Calendar appointment with client hints parsed from its title."""
    
    appointment_id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    location: Optional[str] = None
    attendees: List[str] = []
    is_recurring: bool = False
    extracted_client_id: str = ""
    extracted_client_name: str = ""
    
    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)
