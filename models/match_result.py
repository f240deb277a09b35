from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel

from models.appointment import Appointment
from models.client import Client
from models.session_record import SessionStatus


class Confidence(str, Enum):
    """Ordered confidence labels for an appointment-to-client link."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class MatchResult(BaseModel):
    """Result of matching a calendar appointment to a client."""
    
    appointment: Optional[Appointment] = None
    client: Optional[Client] = None
    confidence: Confidence = Confidence.NONE
    match_method: str = "no_match"  # "exact_client_id", "exact_name", "partial_name", "manual", "no_match"
    match_details: Dict[str, Any] = {}
    documentation_status: SessionStatus = SessionStatus.NOT_STARTED
    session_id: Optional[str] = None
    
    @property
    def appointment_id(self) -> str:
        return self.appointment.appointment_id if self.appointment else ""

    @property
    def client_id(self) -> Optional[str]:
        return self.client.client_id if self.client else None

    @property
    def is_matched(self) -> bool:
        return self.client is not None
    
    @property
    def requires_review(self) -> bool:
        """Anything short of a high-confidence link goes to a human."""
        return self.confidence != Confidence.HIGH

    @property
    def is_documented(self) -> bool:
        return self.documentation_status == SessionStatus.COMPLETED
