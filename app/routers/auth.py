"""Auth router - registration, login and the bearer token dependency."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.database import get_database
from app.errors import GoalServiceError, UnauthorizedError
from app.models.user import AccessToken, User, UserCreate, UserLogin
from app.services.auth_service import AuthService
from app.utils.auth import verify_access_token


router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, db=Depends(get_database)):
    """
    Register a new user.

    - Returns 400 if the email is already registered
    """
    service = AuthService(db)
    try:
        return await service.register_user(
            email=user.email,
            password=user.password,
            name=user.name,
        )
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.post("/login", response_model=AccessToken)
async def login(login_req: UserLogin, db=Depends(get_database)):
    """
    Exchange credentials for a bearer token.

    - Returns 401 if the credentials are invalid
    """
    service = AuthService(db)
    try:
        token = await service.login(email=login_req.email, password=login_req.password)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
    return AccessToken(access_token=token)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Dependency resolving the caller's user id from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if credentials is None:
        error = UnauthorizedError("Not authenticated")
        raise HTTPException(status_code=error.status_code, detail=error.detail())

    try:
        return verify_access_token(credentials.credentials)
    except UnauthorizedError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())


@router.get("/me", response_model=User)
async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Get the authenticated user.

    - Returns 404 if the user no longer exists
    """
    service = AuthService(db)
    try:
        return await service.get_user_by_id(user_id)
    except GoalServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail())
