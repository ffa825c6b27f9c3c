from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from netsync.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DEBUG)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def init_db() -> None:
    """Create missing tables. Existing tables are left untouched."""
    from netsync import models  # noqa: F401 – registers tables with Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
