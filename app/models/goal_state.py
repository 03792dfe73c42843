"""Per-week goal state model definitions."""
from datetime import datetime
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class DayOfWeek(IntEnum):
    """ISO day of week."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class DailyState(BaseModel):
    """Day assignment for a daily goal within a week."""

    day_of_week: DayOfWeek
    date_timestamp: Optional[datetime] = None


class WeeklyGoalState(BaseModel):
    """State of one goal in one ISO week (stars, pins, day assignment)."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    year: int
    quarter: int
    goal_id: str
    week_number: int
    is_starred: bool = False
    is_pinned: bool = False
    daily: Optional[DailyState] = None
    created_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}
