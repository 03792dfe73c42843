"""Adhoc goal router - week-scoped goals outside the hierarchy."""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_database
from app.errors import GoalServiceError
from app.models.adhoc_goal import (
    AdhocGoal,
    AdhocGoalCreate,
    AdhocGoalUpdate,
    AdhocWeekMoveRequest,
    AdhocWeekMoveResult,
)
from app.routers.auth import get_current_user_id
from app.services.adhoc_goal_service import AdhocGoalService


router = APIRouter(prefix="/adhoc-goals", tags=["adhoc-goals"])


@router.post("", response_model=AdhocGoal, status_code=status.HTTP_201_CREATED)
async def create_adhoc_goal(
    goal: AdhocGoalCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Create an adhoc goal for an ISO week."""
    service = AdhocGoalService(db)
    try:
        return await service.create_adhoc_goal(user_id=user_id, adhoc_create=goal)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("", response_model=list[AdhocGoal])
async def list_adhoc_goals(
    year: int = Query(..., ge=1970, le=9999, description="ISO week-year"),
    week_number: int = Query(..., ge=1, le=53),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the adhoc goals of one ISO week."""
    service = AdhocGoalService(db)
    return await service.list_adhoc_goals_for_week(
        user_id=user_id,
        year=year,
        week_number=week_number,
    )


@router.post("/move-week", response_model=AdhocWeekMoveResult)
async def move_adhoc_goals_from_week(
    request: AdhocWeekMoveRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Preview or commit moving the open adhoc goals of one week to another.

    - dry_run (default) only lists the goals
    - Completed goals stay in the source week
    """
    service = AdhocGoalService(db)
    try:
        return await service.move_incomplete_from_week(
            user_id=user_id,
            source=request.source,
            destination=request.destination,
            dry_run=request.dry_run,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/{goal_id}", response_model=AdhocGoal)
async def get_adhoc_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a single adhoc goal."""
    service = AdhocGoalService(db)
    try:
        return await service.get_adhoc_goal(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.patch("/{goal_id}", response_model=AdhocGoal)
async def update_adhoc_goal(
    goal_id: str,
    goal_update: AdhocGoalUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Update an adhoc goal.

    - is_complete stamps or clears completed_at
    """
    service = AdhocGoalService(db)
    try:
        return await service.update_adhoc_goal(
            user_id=user_id,
            goal_id=goal_id,
            adhoc_update=goal_update,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.delete("/{goal_id}")
async def delete_adhoc_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Delete an adhoc goal."""
    service = AdhocGoalService(db)
    try:
        return await service.delete_adhoc_goal(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
