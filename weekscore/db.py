from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from weekscore.config import settings


def normalize_database_url(url: str) -> str:
    """Force the asyncpg driver onto bare Postgres URLs (Heroku-style and libpq-style)."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


engine = create_async_engine(normalize_database_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session
