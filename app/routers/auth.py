from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import CacheDep, CurrentUser, DbDep, SessionsDep, rate_limit
from app.models import MeResponse, MessageResponse, TokenResponse, UserCreate, UserLogin
from app.services.auth_service import AuthService
from app.services.user_service import EmailAlreadyInUse, UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    user_data: UserCreate, db: DbDep, cache: CacheDep, sessions: SessionsDep
):
    """Create an account and log it in"""
    try:
        return await AuthService(db, cache, sessions).register(user_data)
    except EmailAlreadyInUse:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already in use",
        )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin, db: DbDep, cache: CacheDep, sessions: SessionsDep
):
    result = await AuthService(db, cache, sessions).login(credentials)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return result


@router.post(
    "/logout",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def logout(user: CurrentUser, db: DbDep, cache: CacheDep, sessions: SessionsDep):
    """End the session of the presented token"""
    await AuthService(db, cache, sessions).logout(user.user_id, user.token_id)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me", response_model=MeResponse, dependencies=[Depends(rate_limit("auth"))]
)
async def me(user: CurrentUser, db: DbDep, cache: CacheDep, sessions: SessionsDep):
    current, cached = await UserService(db, cache, sessions).get_user(user.user_id)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return MeResponse(user=current, cached=cached)
