from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class FormProcessingEntry(BaseModel):
    """Audit entry written for every processed form response."""
    
    timestamp: datetime
    form_response_id: str = "unknown"
    client_id: str = "unknown"
    session_id: str = "none"
    success: bool
    error_message: Optional[str] = None
