"""
Database connection and session management.

Key concepts:
- We use SQLAlchemy 2.0's async API (asyncpg in production, aiosqlite
  for local development and tests)
- AsyncSession gives us non-blocking database calls, so a slow query never
  stalls an in-flight video stream on the same event loop
- get_db() is a "dependency" that FastAPI injects into route handlers;
  it provides a session and ensures cleanup after each request
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from streamvault.config import settings

# SQLite gets the default pool; pool sizing only applies to server databases
engine_kwargs = {"echo": settings.DEBUG}
if not settings.is_sqlite:
    engine_kwargs.update(pool_size=5, max_overflow=10)

engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)

# Objects stay loaded after commit; lazy loads do not work under asyncio
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db():
    """FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is closed when the request finishes, even if an error occurs.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create all tables defined by our models.

    Called once at startup; there is no migration tooling yet.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
