"""Adhoc goal model definitions (week-scoped tasks outside the hierarchy)."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.goal_state import DayOfWeek


class AdhocGoalBase(BaseModel):
    """Base adhoc goal fields."""

    title: str
    details: Optional[str] = None
    domain_id: Optional[str] = None
    day_of_week: Optional[DayOfWeek] = None
    due_date: Optional[datetime] = None


class AdhocGoalCreate(AdhocGoalBase):
    """Adhoc goal creation model. ``year`` is the ISO week-year."""

    year: int = Field(ge=1970, le=9999)
    week_number: int = Field(ge=1, le=53)


class AdhocGoalUpdate(BaseModel):
    """Adhoc goal update model - all fields optional."""

    title: Optional[str] = None
    details: Optional[str] = None
    domain_id: Optional[str] = None
    week_number: Optional[int] = Field(default=None, ge=1, le=53)
    day_of_week: Optional[DayOfWeek] = None
    due_date: Optional[datetime] = None
    is_complete: Optional[bool] = None


class AdhocGoal(AdhocGoalBase):
    """Full adhoc goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    year: int
    quarter: int
    week_number: int
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}


class AdhocWeek(BaseModel):
    """An ISO week addressed by week-year and week number."""

    year: int = Field(ge=1970, le=9999)
    week_number: int = Field(ge=1, le=53)


class AdhocWeekMoveRequest(BaseModel):
    """Request to move the open adhoc goals of one week to another."""

    source: AdhocWeek
    destination: AdhocWeek
    dry_run: bool = True


class AdhocWeekMoveResult(BaseModel):
    """Open adhoc goals of a week move and, when committed, how many moved."""

    source: AdhocWeek
    destination: AdhocWeek
    dry_run: bool
    can_move: bool = False
    goals: list[AdhocGoal] = Field(default_factory=list)
    goals_moved: int = 0
