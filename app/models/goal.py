"""Goal model definitions (quarterly, weekly and daily hierarchy)."""
from datetime import datetime
from enum import IntEnum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.goal_state import DayOfWeek, WeeklyGoalState
from app.utils.path import join_path


class GoalDepth(IntEnum):
    """Position of a goal in the hierarchy."""

    QUARTERLY = 0
    WEEKLY = 1
    DAILY = 2


class Period(BaseModel):
    """A quarter addressed by calendar year."""

    year: int = Field(ge=1970, le=9999)
    quarter: int = Field(ge=1, le=4)


class FromGoal(BaseModel):
    """Lineage pointers of a carried-over goal."""

    previous_goal_id: str
    root_goal_id: str


class CarryOver(BaseModel):
    """Carry-over metadata embedded in a goal."""

    type: Literal["week"] = "week"
    num_weeks: int
    from_goal: FromGoal


class GoalBase(BaseModel):
    """Base goal fields."""

    title: str
    details: Optional[str] = None


class GoalCreate(GoalBase):
    """
    Goal creation model.

    Quarterly goals need ``year`` and ``quarter``; weekly and daily goals take
    their period from ``parent_id``. Daily goals also need ``day_of_week``.
    """

    year: Optional[int] = None
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    parent_id: Optional[str] = None
    week_number: int = Field(ge=1, le=53)
    day_of_week: Optional[DayOfWeek] = None
    date_timestamp: Optional[datetime] = None
    is_starred: bool = False
    is_pinned: bool = False


class GoalUpdate(BaseModel):
    """Goal update model - all fields optional."""

    title: Optional[str] = None
    details: Optional[str] = None


class GoalCompletionUpdate(BaseModel):
    """Completion toggle for a goal."""

    is_complete: bool
    update_children: bool = False


class GoalCarryOverRequest(BaseModel):
    """Request to copy one goal into another quarter, keeping its lineage."""

    destination: Period
    depth: GoalDepth
    parent_id: Optional[str] = None
    week_number: Optional[int] = Field(default=None, ge=1, le=53)


class Goal(GoalBase):
    """Full goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    year: int
    quarter: int
    parent_id: Optional[str] = None
    in_path: str
    depth: GoalDepth
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    carry_over: Optional[CarryOver] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def materialized_path(self) -> str:
        """Materialized path of this goal (parent path + own id)."""
        return join_path(self.in_path, self.id)


class GoalNode(Goal):
    """A goal placed in a tree, with children and optional per-week state."""

    path: str = ""
    children: list["GoalNode"] = Field(default_factory=list)
    state: Optional[WeeklyGoalState] = None
    weeks: Optional[list[int]] = None
    parent_title: Optional[str] = None
    grand_parent_title: Optional[str] = None


GoalNode.model_rebuild()


class GoalDeletionResult(BaseModel):
    """Goals and state rows removed (or, for a dry run, that would be removed)."""

    dry_run: bool
    goal_ids: list[str]
    deleted_goal_count: int
    deleted_state_count: int
    preview: Optional[GoalNode] = None
