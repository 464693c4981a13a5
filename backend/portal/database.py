from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from .config import Settings

Base = declarative_base()


class Database:
    """Engine and session factory for one process.

    Created and disposed by the application lifespan; request handlers reach it
    through ``request.app.state.database``.
    """

    def __init__(self, settings: Settings):
        engine_args = {
            "echo": settings.debug,
            "pool_pre_ping": True,  # Verify connections before use
        }
        # Supabase/PostgreSQL with PgBouncer needs statement_cache_size=0
        # SQLite doesn't support these parameters
        if "postgresql" in settings.database_url:
            engine_args["connect_args"] = {
                "statement_cache_size": 0,
                "prepared_statement_cache_size": 0,
            }
            engine_args.update(pool_recycle=300, pool_size=20, max_overflow=30)

        self.engine = create_async_engine(settings.database_url, **engine_args)
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_models(self) -> None:
        # Register models on Base.metadata before create_all
        from . import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
