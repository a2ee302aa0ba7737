import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, Enum):
    REGULAR = "regular"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"


# Users
class UserBase(SQLModel):
    email: str = Field(min_length=3, max_length=255, index=True, unique=True)
    name: str | None = Field(default=None, max_length=200)


class User(UserBase, table=True):
    """Database model"""

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    password_hash: str
    role: UserRole = Field(default=UserRole.REGULAR)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class UserRead(UserBase):
    """Cached projection of a user"""

    id: str
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=72)


class UserLogin(SQLModel):
    email: str
    password: str = Field(max_length=72)


class UserUpdate(SQLModel):
    """Admin update - all fields optional"""

    email: str | None = Field(default=None, min_length=3, max_length=255)
    name: str | None = Field(default=None, max_length=200)
    role: UserRole | None = None


class PasswordReset(SQLModel):
    new_password: str = Field(min_length=8, max_length=72)


# Tasks
class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(min_length=1, max_length=200, index=True)
    description: str | None = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.OPEN)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class TaskCreate(TaskBase):
    """Schema for creating a task"""

    pass


class TaskUpdate(SQLModel):
    """Schema for updating a task - all fields optional"""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None


class TaskRead(TaskBase):
    """Cached projection of a task"""

    id: str
    user_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


# Responses
class TokenResponse(SQLModel):
    token: str
    user: UserRead


class MeResponse(SQLModel):
    user: UserRead
    cached: bool


class UserSummary(SQLModel):
    id: str
    email: str
    name: str | None = None
    role: UserRole


class TaskWithOwner(TaskRead):
    user: UserSummary


class Pagination(SQLModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TaskPage(SQLModel):
    tasks: list[TaskWithOwner]
    pagination: Pagination


class UserDetail(UserRead):
    tasks: list[TaskRead]
    task_count: int


class TopUser(SQLModel):
    id: str
    email: str
    name: str | None = None
    task_count: int


class UserStats(SQLModel):
    total: int
    admins: int
    regular: int
    recent: list[UserRead]
    top_users: list[TopUser]


class TaskStats(SQLModel):
    total: int
    open: int
    in_progress: int
    done: int


class SystemStats(SQLModel):
    users: UserStats
    tasks: TaskStats


class MessageResponse(SQLModel):
    message: str
