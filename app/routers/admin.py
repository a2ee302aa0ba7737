from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.dependencies import AdminUser, CacheDep, DbDep, SessionsDep, rate_limit
from app.models import (
    MessageResponse,
    PasswordReset,
    SystemStats,
    TaskPage,
    TaskRead,
    TaskStatus,
    UserDetail,
    UserRead,
    UserRole,
    UserUpdate,
)
from app.services.admin_service import AdminService
from app.services.task_service import TaskService
from app.services.user_service import EmailAlreadyInUse, UserService

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(rate_limit("admin"))],
)


def _user_not_found():
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.get("/users", response_model=list[UserRead])
async def list_users(admin: AdminUser, db: DbDep, cache: CacheDep, sessions: SessionsDep):
    return await UserService(db, cache, sessions).list_users()


@router.get("/users/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: str, admin: AdminUser, db: DbDep, cache: CacheDep, sessions: SessionsDep
):
    """User details with their 10 most recent tasks"""
    detail = await UserService(db, cache, sessions).get_user_detail(user_id)
    if detail is None:
        raise _user_not_found()
    return detail


@router.patch("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    admin: AdminUser,
    db: DbDep,
    cache: CacheDep,
    sessions: SessionsDep,
):
    if user_id == admin.user_id and user_data.role == UserRole.REGULAR:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot demote yourself from admin",
        )
    try:
        user = await UserService(db, cache, sessions).update_user(user_id, user_data)
    except EmailAlreadyInUse:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already in use",
        )
    if user is None:
        raise _user_not_found()
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str, admin: AdminUser, db: DbDep, cache: CacheDep, sessions: SessionsDep
):
    if user_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete yourself",
        )
    if not await UserService(db, cache, sessions).delete_user(user_id):
        raise _user_not_found()
    return MessageResponse(message="User deleted successfully")


@router.post("/users/{user_id}/password", response_model=MessageResponse)
async def reset_password(
    user_id: str,
    body: PasswordReset,
    admin: AdminUser,
    db: DbDep,
    cache: CacheDep,
    sessions: SessionsDep,
):
    """Set a new password and force the user to log in again"""
    service = UserService(db, cache, sessions)
    if not await service.reset_password(user_id, body.new_password):
        raise _user_not_found()
    return MessageResponse(message="Password reset successfully. User must login again.")


@router.get("/users/{user_id}/tasks", response_model=list[TaskRead])
async def get_user_tasks(
    user_id: str,
    admin: AdminUser,
    db: DbDep,
    cache: CacheDep,
    sessions: SessionsDep,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
):
    if await UserService(db, cache, sessions).load_user(user_id) is None:
        raise _user_not_found()
    return await TaskService(db, cache).list_tasks_filtered(user_id, task_status)


@router.get("/tasks", response_model=TaskPage)
async def list_all_tasks(
    admin: AdminUser,
    db: DbDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    user_id: str | None = Query(default=None, alias="userId"),
):
    """All tasks across users, paginated"""
    return await AdminService(db).list_tasks(page, limit, task_status, user_id)


@router.get("/stats", response_model=SystemStats)
async def get_stats(admin: AdminUser, db: DbDep):
    return await AdminService(db).get_stats()
