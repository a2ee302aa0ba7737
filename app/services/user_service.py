from datetime import datetime, timezone

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.cache.layer import CacheLayer
from app.cache.sessions import SessionRegistry
from app.core.security import hash_password
from app.models import (
    Task,
    TaskRead,
    User,
    UserCreate,
    UserDetail,
    UserRead,
    UserRole,
    UserUpdate,
)


class EmailAlreadyInUse(Exception):
    pass


class UserService:
    def __init__(
        self,
        db: AsyncSession,
        cache: CacheLayer,
        sessions: SessionRegistry,
    ):
        self.db = db
        self.cache = cache
        self.sessions = sessions

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.exec(select(User).where(User.email == email))
        return result.first()

    async def create_user(
        self, user_data: UserCreate, role: UserRole = UserRole.REGULAR
    ) -> User:
        if await self.get_by_email(user_data.email):
            raise EmailAlreadyInUse(user_data.email)
        user = User(
            email=user_data.email,
            name=user_data.name,
            password_hash=hash_password(user_data.password),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # a concurrent registration won the unique email index
            await self.db.rollback()
            raise EmailAlreadyInUse(user_data.email)
        await self.db.refresh(user)
        return user

    async def load_user(self, user_id: str) -> UserRead | None:
        user = await self.db.get(User, user_id)
        if user is None:
            return None
        return UserRead.model_validate(user)

    async def get_user(self, user_id: str) -> tuple[UserRead | None, bool]:
        """Cache-aside user lookup; the flag tells whether it came from cache."""
        cached = await self.cache.get_cached_user(user_id)
        if cached is not None:
            return cached, True

        user = await self.load_user(user_id)
        if user is not None:
            await self.cache.set_cached_user(user_id, user)
        return user, False

    async def list_users(self) -> list[UserRead]:
        result = await self.db.exec(select(User).order_by(User.created_at.desc()))
        return [UserRead.model_validate(user) for user in result.all()]

    async def get_user_detail(self, user_id: str) -> UserDetail | None:
        user = await self.db.get(User, user_id)
        if user is None:
            return None
        recent = await self.db.exec(
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.created_at.desc())
            .limit(10)
        )
        count = await self.db.exec(
            select(func.count()).select_from(Task).where(Task.user_id == user_id)
        )
        return UserDetail(
            **UserRead.model_validate(user).model_dump(),
            tasks=[TaskRead.model_validate(task) for task in recent.all()],
            task_count=count.one(),
        )

    async def update_user(self, user_id: str, user_data: UserUpdate) -> UserRead | None:
        """
        Apply an admin update. A role change revokes every session of the
        user so the new role is only granted on a fresh login.
        """
        user = await self.db.get(User, user_id)
        if user is None:
            return None

        if user_data.email and user_data.email != user.email:
            if await self.get_by_email(user_data.email):
                raise EmailAlreadyInUse(user_data.email)

        previous_role = user.role
        update_data = user_data.model_dump(exclude_unset=True)
        for required in ("email", "role"):
            if update_data.get(required) is None:
                update_data.pop(required, None)
        user.sqlmodel_update(update_data)
        user.updated_at = datetime.now(timezone.utc)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise EmailAlreadyInUse(user_data.email)
        await self.db.refresh(user)

        await self.cache.invalidate_user_cache(user_id)
        if user_data.role is not None and user_data.role != previous_role:
            await self.sessions.revoke_all_user_sessions(user_id)
        return UserRead.model_validate(user)

    async def reset_password(self, user_id: str, new_password: str) -> bool:
        user = await self.db.get(User, user_id)
        if user is None:
            return False
        user.password_hash = hash_password(new_password)
        user.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.sessions.revoke_all_user_sessions(user_id)
        return True

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user with their tasks and drop everything cached for them."""
        user = await self.db.get(User, user_id)
        if user is None:
            return False

        result = await self.db.exec(select(Task).where(Task.user_id == user_id))
        task_ids = [task.id for task in result.all()]
        await self.db.exec(delete(Task).where(Task.user_id == user_id))
        await self.db.delete(user)
        await self.db.commit()

        await self.cache.invalidate_user_cache(user_id)
        await self.cache.invalidate_tasks_cache(user_id)
        for task_id in task_ids:
            await self.cache.invalidate_task_cache(task_id, user_id)
        await self.sessions.revoke_all_user_sessions(user_id)
        return True
