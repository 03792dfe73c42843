"""Status flag model definitions (fire and pending side tables)."""
from datetime import datetime

from pydantic import BaseModel


class PendingStatusUpdate(BaseModel):
    """Request body for marking a goal as pending."""

    description: str


class PendingGoal(BaseModel):
    """A pending goal and the reason it is blocked."""

    goal_id: str
    description: str
    created_at: datetime


class FireStatus(BaseModel):
    """Fire flag of a goal after a toggle."""

    goal_id: str
    is_on_fire: bool
