from datetime import datetime

from pydantic import BaseModel


class GoalChange(BaseModel):
    """Audit entry for a change to a client's goals."""
    
    date: datetime
    client_id: str
    action: str  # ADDED, REMOVED, UPDATED, REORDERED, COMPLETED, BULK_UPDATE
    details: str


class CompletedGoal(BaseModel):
    client_id: str
    goal_text: str
    completed_date: datetime
