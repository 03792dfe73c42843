"""Period migration model definitions."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.goal import CarryOver, Period
from app.models.goal_state import DayOfWeek, WeeklyGoalState


class MaxWeekResult(BaseModel):
    """Last week in which a quarterly goal's weekly children have state."""

    max_week: Optional[int] = None
    child_ids_in_max_week: set[str] = Field(default_factory=set)
    states_in_max_week: list[WeeklyGoalState] = Field(default_factory=list)


class QuarterlyGoalPreview(BaseModel):
    """A quarterly goal that would be carried over."""

    id: str
    title: str
    details: Optional[str] = None
    is_starred: bool = False
    is_pinned: bool = False
    last_active_week: Optional[int] = None


class AdhocGoalPreview(BaseModel):
    """An adhoc goal that would be moved."""

    id: str
    title: str
    details: Optional[str] = None
    domain_id: Optional[str] = None
    week_number: int
    day_of_week: Optional[DayOfWeek] = None
    due_date: Optional[datetime] = None


class QuarterlyGoalMigrationResult(BaseModel):
    """Outcome of carrying one quarterly goal into the destination quarter."""

    source_goal_id: str
    new_goal_id: str
    quarterly_goal_was_created: bool
    weekly_goals_migrated: int = 0
    weekly_goals_reused: int = 0
    daily_goals_migrated: int = 0
    daily_goals_reused: int = 0


class MigrationFailure(BaseModel):
    """A quarterly goal that could not be migrated."""

    source_goal_id: str
    code: str
    message: str


class MigrationRequest(BaseModel):
    """Request to preview or commit a quarter-to-quarter migration."""

    source: Period
    destination: Period
    dry_run: bool = True
    include_children: bool = False
    selected_quarterly_goal_ids: Optional[list[str]] = None
    selected_adhoc_goal_ids: Optional[list[str]] = None


class QuarterlyGoalMoveRequest(BaseModel):
    """Request to carry a single quarterly goal forward."""

    source: Period
    destination: Period
    include_children: bool = True


class MigrationResult(BaseModel):
    """Candidates of a migration and, when committed, what was written."""

    source: Period
    destination: Period
    dry_run: bool
    quarterly_goals_to_copy: list[QuarterlyGoalPreview] = Field(default_factory=list)
    adhoc_goals_to_copy: list[AdhocGoalPreview] = Field(default_factory=list)
    results: list[QuarterlyGoalMigrationResult] = Field(default_factory=list)
    failures: list[MigrationFailure] = Field(default_factory=list)
    quarterly_goals_copied: int = 0
    adhoc_goals_moved: int = 0


class PullPreviewChild(BaseModel):
    """A weekly or daily goal shown in a pull preview."""

    id: str
    title: str
    details: Optional[str] = None
    depth: int
    is_complete: bool = False
    children: list["PullPreviewChild"] = Field(default_factory=list)


class GoalPullPreview(BaseModel):
    """A quarterly goal with the content of its last active week."""

    id: str
    title: str
    details: Optional[str] = None
    year: int
    quarter: int
    is_complete: bool = False
    is_starred: bool = False
    is_pinned: bool = False
    last_non_empty_week: Optional[int] = None
    children: list[PullPreviewChild] = Field(default_factory=list)


PullPreviewChild.model_rebuild()


class WeekPeriod(BaseModel):
    """An ISO week inside a quarter, optionally narrowed to one day."""

    year: int = Field(ge=1970, le=9999)
    quarter: int = Field(ge=1, le=4)
    week_number: int = Field(ge=1, le=53)
    day_of_week: Optional[DayOfWeek] = None

    @property
    def period(self) -> Period:
        return Period(year=self.year, quarter=self.quarter)

    def same_week(self, other: "WeekPeriod") -> bool:
        return (self.year, self.quarter, self.week_number) == (
            other.year,
            other.quarter,
            other.week_number,
        )


class WeeklyGoalToCopy(BaseModel):
    """A weekly goal that would be carried into the destination week."""

    id: str
    title: str
    carry_over: CarryOver
    daily_goals_count: int = 0
    quarterly_goal_id: Optional[str] = None


class DailyGoalToMove(BaseModel):
    """A daily goal that would follow its weekly goal into another week or day."""

    id: str
    title: str
    details: Optional[str] = None
    weekly_goal_id: str
    weekly_goal_title: str
    quarterly_goal_id: Optional[str] = None
    quarterly_goal_title: Optional[str] = None


class QuarterlyGoalToUpdate(BaseModel):
    """A quarterly goal whose star or pin is copied to the destination week."""

    id: str
    title: str
    is_starred: bool = False
    is_pinned: bool = False


class SkippedGoal(BaseModel):
    """A goal of the source week that is not copied, with the reason."""

    id: str
    title: str
    reason: Literal["already_moved", "no_open_children", "not_in_destination_quarter"]
    daily_goals_count: int = 0
    quarterly_goal_id: Optional[str] = None


class WeekMigrationRequest(BaseModel):
    """Request to preview or commit pulling goals from one week into another."""

    source: WeekPeriod
    destination: WeekPeriod
    dry_run: bool = True


class LastNonEmptyWeekRequest(BaseModel):
    """Request to pull from the most recent earlier week that has open goals."""

    destination: WeekPeriod
    dry_run: bool = True


class WeekMigrationResult(BaseModel):
    """Plan of a week migration and, when committed, what was written."""

    source: Optional[WeekPeriod] = None
    destination: WeekPeriod
    dry_run: bool
    can_pull: bool = True
    weekly_goals_to_copy: list[WeeklyGoalToCopy] = Field(default_factory=list)
    daily_goals_to_move: list[DailyGoalToMove] = Field(default_factory=list)
    quarterly_goals_to_update: list[QuarterlyGoalToUpdate] = Field(default_factory=list)
    skipped_goals: list[SkippedGoal] = Field(default_factory=list)
    weekly_goals_copied: int = 0
    weekly_goals_reused: int = 0
    daily_goals_moved: int = 0
    quarterly_goals_updated: int = 0


class DayMigrationRequest(BaseModel):
    """Request to move the daily goals of one day to another day."""

    source: WeekPeriod
    destination: WeekPeriod
    dry_run: bool = True
    move_only_incomplete: bool = True


class DayMigrationResult(BaseModel):
    """Daily goals of a day move and, when committed, how many moved."""

    source: WeekPeriod
    destination: WeekPeriod
    dry_run: bool
    goals_to_move: list[DailyGoalToMove] = Field(default_factory=list)
    goals_moved: int = 0
