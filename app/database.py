import logging

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import get_settings

logger = logging.getLogger(__name__)

load_dotenv()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=False,  # Set to False in production
        future=True,
        pool_pre_ping=True,
        **kwargs,
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Create async engine
engine = build_engine(get_settings().database_url)

# Create async session factory using async_sessionmaker
async_session = build_sessionmaker(engine)


# Dependency for getting DB session
async def get_db():
    async with async_session() as session:
        yield session


async def create_db_and_tables(bind: AsyncEngine = engine):
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def check_database(session: AsyncSession) -> bool:
    """Run a trivial query; False if the database cannot answer it."""
    try:
        await session.exec(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database check failed: %s", e)
        return False
