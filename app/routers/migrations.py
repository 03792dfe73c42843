"""Migration router - pull goals from one quarter, week or day into another."""
from fastapi import APIRouter, Depends, HTTPException

from app.database import get_database
from app.errors import GoalServiceError
from app.models.migration import (
    DayMigrationRequest,
    DayMigrationResult,
    LastNonEmptyWeekRequest,
    MigrationRequest,
    MigrationResult,
    QuarterlyGoalMigrationResult,
    QuarterlyGoalMoveRequest,
    WeekMigrationRequest,
    WeekMigrationResult,
)
from app.routers.auth import get_current_user_id
from app.services.migration_service import MigrationService
from app.services.week_migration_service import WeekMigrationService


router = APIRouter(prefix="/migrations", tags=["migrations"])


@router.post("/quarter", response_model=MigrationResult)
async def migrate_quarter(
    request: MigrationRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Preview or commit a quarter-to-quarter migration.

    - dry_run (default) only lists the candidates
    - A commit is safe to retry: goals already carried over are reused
    - Per-goal failures are listed in the response, not raised
    """
    service = MigrationService(db)
    try:
        return await service.preview_or_commit_migration(
            user_id=user_id,
            source=request.source,
            destination=request.destination,
            dry_run=request.dry_run,
            include_children=request.include_children,
            selected_quarterly_goal_ids=request.selected_quarterly_goal_ids,
            selected_adhoc_goal_ids=request.selected_adhoc_goal_ids,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/quarter/goals/{goal_id}", response_model=QuarterlyGoalMigrationResult)
async def move_quarterly_goal(
    goal_id: str,
    request: QuarterlyGoalMoveRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Carry a single quarterly goal (and by default its open children) forward."""
    service = MigrationService(db)
    try:
        return await service.move_quarterly_goal(
            user_id=user_id,
            goal_id=goal_id,
            source=request.source,
            destination=request.destination,
            include_children=request.include_children,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/week", response_model=WeekMigrationResult)
async def migrate_week(
    request: WeekMigrationRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Preview or commit pulling open goals from one week into another.

    - dry_run (default) only returns the plan
    - Weekly goals whose daily goals are all done are skipped
    - A commit is safe to retry
    """
    service = WeekMigrationService(db)
    try:
        return await service.preview_or_commit_week_migration(
            user_id=user_id,
            source=request.source,
            destination=request.destination,
            dry_run=request.dry_run,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/week/last-non-empty", response_model=WeekMigrationResult)
async def migrate_from_last_non_empty_week(
    request: LastNonEmptyWeekRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Pull from the most recent earlier week with open goals; can_pull is false when there is none."""
    service = WeekMigrationService(db)
    try:
        return await service.move_from_last_non_empty_week(
            user_id=user_id,
            destination=request.destination,
            dry_run=request.dry_run,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/day", response_model=DayMigrationResult)
async def migrate_day(
    request: DayMigrationRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Preview or commit moving the daily goals of one day to another day of the quarter."""
    service = WeekMigrationService(db)
    try:
        return await service.move_goals_from_day(
            user_id=user_id,
            source=request.source,
            destination=request.destination,
            dry_run=request.dry_run,
            move_only_incomplete=request.move_only_incomplete,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
