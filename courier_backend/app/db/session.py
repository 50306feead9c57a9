"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support for PostgreSQL.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from courier_backend.app.core.config import settings

engine_options = {"echo": settings.db_echo, "future": True}

# SQLite (local runs) has no connection pool to size
if not settings.database_url.startswith("sqlite"):
    engine_options["pool_size"] = settings.db_pool_size
    engine_options["max_overflow"] = settings.db_max_overflow

# Create async engine
engine = create_async_engine(settings.database_url, **engine_options)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()

# Primary keys are INTEGER columns; larger values cannot be bound as parameters
MAX_INTEGER_ID = 2**31 - 1


def id_in_range(value: int) -> bool:
    return 0 < value <= MAX_INTEGER_ID


async def get_db():
    """
    FastAPI dependency for database sessions.
    
    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
