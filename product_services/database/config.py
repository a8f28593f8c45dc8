from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base

from product_services.config.settings import settings

# Base class for ORM mappings of the reporting views
Base = declarative_base()

# Async engine over the reporting warehouse. The product services view is
# read-only from this service, so sessions never commit.
engine = create_async_engine(
    settings.async_database_url,
    echo=False,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=30,         # seconds to wait for a connection
    pool_recycle=1800,       # recycle connections every 30 min
    pool_pre_ping=True,      # validate connections before use
    connect_args={"ssl": "require"} if settings.db_ssl else {},
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """FastAPI dependency yielding a read session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Release pooled connections on app shutdown."""
    await engine.dispose()
