"""
Async database manager for SQLAlchemy
- PostgreSQL (asyncpg) in deployments, SQLite (aiosqlite) for local runs and tests
- Table creation on startup
- One session per request, committed on success and rolled back on error
"""
import logging
from asyncio import current_task
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_scoped_session,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine
)
from app.core.config import settings
from app.models.base import Base

logger = logging.getLogger(__name__)

DB_MODELS = [
    "app.models.user",
    "app.models.profile",
    "app.models.category",
    "app.models.course",
]


class DatabaseSessionManager:
    """Manages async database sessions and schema setup."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    async def init(self, database_url: Optional[str] = None):
        """Create the engine, register models and create missing tables."""
        db_url = self._ensure_ssl(database_url or settings.DATABASE_URL)

        if db_url.startswith("sqlite"):
            self.engine = create_async_engine(db_url, echo=settings.DB_ECHO)
            # SQLite leaves foreign keys off unless asked per connection
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_async_engine(
                db_url,
                pool_size=15,
                max_overflow=5,
                pool_timeout=30,
                pool_recycle=300,
                pool_pre_ping=True,
                echo=settings.DB_ECHO,
                connect_args={"prepared_statement_cache_size": 0},
            )

        try:
            async with self.engine.begin() as conn:
                await self._setup_database(conn)
        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            await self.close()
            raise

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False
        )

    def _ensure_ssl(self, db_url: str) -> str:
        """Ensure SSL is properly configured for Render"""
        if "render.com" in db_url and "?ssl=" not in db_url:
            return f"{db_url}?ssl=require"
        return db_url

    async def _setup_database(self, conn):
        """Initialize database schema"""
        from importlib import import_module

        await conn.execute(text("SELECT 1"))
        for model in DB_MODELS:
            import_module(model)

        await conn.run_sync(Base.metadata.create_all)
        logger.info(f"📝 Tables ready: {list(Base.metadata.tables.keys())}")

    @property
    def session(self) -> async_scoped_session:
        """Scoped session for the current async task"""
        if not self.session_factory:
            raise RuntimeError("DatabaseSessionManager not initialized")
        return async_scoped_session(
            self.session_factory,
            scopefunc=current_task
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for safe session handling"""
        async with self.session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Cleanup connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Initialize session manager
session_manager = DatabaseSessionManager()

async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions
    Usage:
    @router.get("/")
    async def endpoint(db: AsyncSession = Depends(aget_db)):
        ...
    """
    async with session_manager.get_session() as session:
        yield session
