"""Goal router - API endpoints for the goal hierarchy."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_database
from app.errors import GoalServiceError
from app.models.goal import (
    Goal,
    GoalCarryOverRequest,
    GoalCompletionUpdate,
    GoalCreate,
    GoalDeletionResult,
    GoalDepth,
    GoalNode,
    GoalUpdate,
    Period,
)
from app.models.migration import GoalPullPreview, MaxWeekResult
from app.routers.auth import get_current_user_id
from app.services.goal_service import GoalService
from app.services.migration_service import MigrationService


router = APIRouter(prefix="/goals", tags=["goals"])


@router.post("", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal: GoalCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Create a quarterly, weekly or daily goal.

    - Quarterly goals need year and quarter
    - Weekly and daily goals take their quarter from parent_id
    - Daily goals need day_of_week
    """
    service = GoalService(db)
    try:
        return await service.create_goal(user_id=user_id, goal_create=goal)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("", response_model=list[Goal])
async def list_goals(
    year: int = Query(..., ge=1970, le=9999),
    quarter: int = Query(..., ge=1, le=4),
    depth: Optional[int] = Query(None, ge=0, le=2, description="Filter by depth (0, 1, 2)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the authenticated user's goals for a quarter."""
    service = GoalService(db)
    return await service.list_goals(
        user_id=user_id,
        year=year,
        quarter=quarter,
        depth=GoalDepth(depth) if depth is not None else None,
    )


@router.get("/tree", response_model=list[GoalNode])
async def get_week_tree(
    year: int = Query(..., ge=1970, le=9999),
    quarter: int = Query(..., ge=1, le=4),
    week_number: int = Query(..., ge=1, le=53),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Get the goal tree for one week.

    - Every quarterly goal of the quarter
    - Weekly and daily goals that have state in the week, with that state
    """
    service = GoalService(db)
    return await service.get_week_tree(
        user_id=user_id,
        year=year,
        quarter=quarter,
        week_number=week_number,
    )


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a single goal."""
    service = GoalService(db)
    try:
        return await service.get_goal(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.patch("/{goal_id}", response_model=Goal)
async def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Update a goal's title or details."""
    service = GoalService(db)
    try:
        return await service.update_goal(
            user_id=user_id,
            goal_id=goal_id,
            goal_update=goal_update,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/{goal_id}/completion", response_model=Goal)
async def set_goal_completion(
    goal_id: str,
    completion: GoalCompletionUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Complete or reopen a goal.

    - update_children also applies the change to a weekly goal's daily goals
    """
    service = GoalService(db)
    try:
        return await service.set_goal_completion(
            user_id=user_id,
            goal_id=goal_id,
            completion=completion,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.delete("/{goal_id}", response_model=GoalDeletionResult)
async def delete_goal(
    goal_id: str,
    dry_run: bool = Query(False, description="Preview the deletion without removing anything"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Delete a goal, its descendants and their week state.

    - dry_run returns the affected subtree instead of deleting
    """
    service = GoalService(db)
    try:
        return await service.delete_goal(user_id=user_id, goal_id=goal_id, dry_run=dry_run)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/{goal_id}/max-week", response_model=MaxWeekResult)
async def get_max_week(
    goal_id: str,
    year: int = Query(..., ge=1970, le=9999),
    quarter: int = Query(..., ge=1, le=4),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get the last week in which a quarterly goal's weekly goals have state."""
    service = GoalService(db)
    try:
        return await service.get_max_week(
            user_id=user_id,
            goal_id=goal_id,
            period=Period(year=year, quarter=quarter),
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/{goal_id}/pull-preview", response_model=GoalPullPreview)
async def get_pull_preview(
    goal_id: str,
    year: int = Query(..., ge=1970, le=9999),
    quarter: int = Query(..., ge=1, le=4),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Preview the weekly and daily goals a quarterly goal would bring along."""
    service = MigrationService(db)
    try:
        return await service.get_goal_pull_preview(
            user_id=user_id,
            goal_id=goal_id,
            period=Period(year=year, quarter=quarter),
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/{goal_id}/carry-over", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def carry_over_goal(
    goal_id: str,
    request: GoalCarryOverRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Copy a goal into another quarter as the next link of its carry-over chain.

    - Weekly and daily copies need a parent_id one level up in the destination quarter
    - week_number optionally tracks the copy in that week
    """
    service = GoalService(db)
    try:
        return await service.create_carried_over_goal(
            user_id=user_id,
            source_goal_id=goal_id,
            destination=request.destination,
            depth=request.depth,
            parent_id=request.parent_id,
            week_number=request.week_number,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/{goal_id}/root")
async def get_root_goal_id(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get the first goal of a goal's carry-over chain."""
    service = GoalService(db)
    try:
        root_goal_id = await service.get_root_goal_id_for_goal(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
    return {"goal_id": goal_id, "root_goal_id": root_goal_id}
