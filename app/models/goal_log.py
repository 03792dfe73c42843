"""Goal log model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GoalLogCreate(BaseModel):
    """Goal log creation model."""

    goal_id: str
    log_date: datetime
    content: str


class GoalLogUpdate(BaseModel):
    """Goal log update model - all fields optional."""

    log_date: Optional[datetime] = None
    content: Optional[str] = None


class GoalLog(BaseModel):
    """
    Full goal log model with database fields.

    ``root_goal_id`` lets the history of every carried-over instance of a
    goal be read in one query.
    """

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    goal_id: str
    root_goal_id: str
    log_date: datetime
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}
