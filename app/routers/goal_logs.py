"""Goal log router - progress notes on goals."""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_database
from app.errors import GoalServiceError
from app.models.goal_log import GoalLog, GoalLogCreate, GoalLogUpdate
from app.routers.auth import get_current_user_id
from app.services.goal_log_service import GoalLogService


router = APIRouter(prefix="/goal-logs", tags=["goal-logs"])


@router.post("", response_model=GoalLog, status_code=status.HTTP_201_CREATED)
async def create_log(
    log: GoalLogCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Add a log entry to a goal.

    - Content must have text outside HTML tags
    - log_date must lie within the past year (or tomorrow at the latest)
    """
    service = GoalLogService(db)
    try:
        return await service.create_log(user_id=user_id, log_create=log)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("", response_model=list[GoalLog])
async def list_logs(
    goal_id: str = Query(..., description="Goal whose logs to list"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the logs of one goal, newest first."""
    service = GoalLogService(db)
    try:
        return await service.list_logs_for_goal(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/root/{root_goal_id}", response_model=list[GoalLog])
async def list_logs_for_root(
    root_goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the logs of every carried-over instance of a goal, newest first."""
    service = GoalLogService(db)
    return await service.list_logs_for_root_goal(user_id=user_id, root_goal_id=root_goal_id)


@router.patch("/{log_id}", response_model=GoalLog)
async def update_log(
    log_id: str,
    log_update: GoalLogUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Update a log entry's date or content."""
    service = GoalLogService(db)
    try:
        return await service.update_log(user_id=user_id, log_id=log_id, log_update=log_update)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.delete("/{log_id}")
async def delete_log(
    log_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Delete a log entry."""
    service = GoalLogService(db)
    try:
        return await service.delete_log(user_id=user_id, log_id=log_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
