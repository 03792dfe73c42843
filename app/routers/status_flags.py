"""Status flag router - fire and pending markers."""
from fastapi import APIRouter, Depends, HTTPException

from app.database import get_database
from app.errors import GoalServiceError
from app.models.status_flag import FireStatus, PendingGoal, PendingStatusUpdate
from app.routers.auth import get_current_user_id
from app.services.status_flag_service import StatusFlagService


router = APIRouter(prefix="/status-flags", tags=["status-flags"])


@router.get("/fire", response_model=list[str])
async def list_fire_goals(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the ids of goals on fire."""
    service = StatusFlagService(db)
    return await service.list_fire_goal_ids(user_id=user_id)


@router.post("/fire/{goal_id}", response_model=FireStatus)
async def toggle_fire(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Toggle a goal's fire flag."""
    service = StatusFlagService(db)
    try:
        is_on_fire = await service.toggle_fire_status(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
    return FireStatus(goal_id=goal_id, is_on_fire=is_on_fire)


@router.get("/pending", response_model=list[PendingGoal])
async def list_pending_goals(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List pending goals with their descriptions."""
    service = StatusFlagService(db)
    return await service.list_pending_goals(user_id=user_id)


@router.put("/pending/{goal_id}", response_model=PendingGoal)
async def set_pending(
    goal_id: str,
    update: PendingStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Mark a goal as pending.

    - Clears the goal's fire flag
    """
    service = StatusFlagService(db)
    try:
        return await service.set_pending_status(
            user_id=user_id,
            goal_id=goal_id,
            description=update.description,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.delete("/pending/{goal_id}", response_model=FireStatus)
async def clear_pending(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Clear a goal's pending flag.

    - Sets the goal on fire
    """
    service = StatusFlagService(db)
    try:
        return await service.clear_pending_status(user_id=user_id, goal_id=goal_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
