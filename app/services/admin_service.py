import math

from sqlalchemy import desc, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.models import (
    Pagination,
    SystemStats,
    Task,
    TaskPage,
    TaskRead,
    TaskStats,
    TaskStatus,
    TaskWithOwner,
    TopUser,
    User,
    UserRead,
    UserRole,
    UserStats,
    UserSummary,
)


class AdminService:
    """Cross-user queries for administrators. Nothing here is cached."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, model, *criteria) -> int:
        query = select(func.count()).select_from(model)
        for criterion in criteria:
            query = query.where(criterion)
        result = await self.db.exec(query)
        return result.one()

    async def list_tasks(
        self,
        page: int = 1,
        limit: int = 20,
        status: TaskStatus | None = None,
        user_id: str | None = None,
    ) -> TaskPage:
        criteria = []
        if status is not None:
            criteria.append(Task.status == status)
        if user_id:
            criteria.append(Task.user_id == user_id)

        query = select(Task, User).join(User, Task.user_id == User.id)
        for criterion in criteria:
            query = query.where(criterion)
        query = (
            query.order_by(Task.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        rows = (await self.db.exec(query)).all()
        total = await self._count(Task, *criteria)

        tasks = [
            TaskWithOwner(
                **TaskRead.model_validate(task).model_dump(),
                user=UserSummary(
                    id=user.id, email=user.email, name=user.name, role=user.role
                ),
            )
            for task, user in rows
        ]
        return TaskPage(
            tasks=tasks,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def get_stats(self) -> SystemStats:
        recent = await self.db.exec(select(User).order_by(User.created_at.desc()).limit(5))

        task_count = func.count(Task.id).label("task_count")
        top = await self.db.exec(
            select(User, task_count)
            .outerjoin(Task, Task.user_id == User.id)
            .group_by(User.id)
            .order_by(desc("task_count"))
            .limit(5)
        )

        return SystemStats(
            users=UserStats(
                total=await self._count(User),
                admins=await self._count(User, User.role == UserRole.ADMIN),
                regular=await self._count(User, User.role == UserRole.REGULAR),
                recent=[UserRead.model_validate(user) for user in recent.all()],
                top_users=[
                    TopUser(id=user.id, email=user.email, name=user.name, task_count=count)
                    for user, count in top.all()
                ],
            ),
            tasks=TaskStats(
                total=await self._count(Task),
                open=await self._count(Task, Task.status == TaskStatus.OPEN),
                in_progress=await self._count(Task, Task.status == TaskStatus.IN_PROGRESS),
                done=await self._count(Task, Task.status == TaskStatus.DONE),
            ),
        )
