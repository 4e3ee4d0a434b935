"""
Database engine and session management
"""

import logging
import uuid
from typing import AsyncGenerator

from sqlalchemy import Column, DateTime, MetaData, String, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from meeting_copilot.config import settings

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


class Base(DeclarativeBase):
    """Declarative base for all tables"""
    metadata = metadata


def generate_id() -> str:
    return uuid.uuid4().hex


class BaseModel(Base):
    """Abstract base: opaque string id plus timestamps"""
    __abstract__ = True

    id = Column(String(32), primary_key=True, default=generate_id, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    module = type(dbapi_connection).__module__
    if "sqlite" in module:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_database_engine(database_url: str = None):
    """Create the async engine with pool settings matching the backend."""
    database_url = database_url or settings.database_url
    engine_kwargs = {"echo": settings.database_echo}

    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        })
    elif database_url.startswith("sqlite"):
        engine_kwargs.update({"connect_args": {"check_same_thread": False}})

    return create_async_engine(database_url, **engine_kwargs)


engine = create_database_engine()
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

if settings.database_echo:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(bind=None):
    """Create all tables"""
    from meeting_copilot import models  # noqa: F401 - registers the tables

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind=None):
    """Drop all tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
