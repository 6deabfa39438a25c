from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from db_assistant.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL, echo=settings.ENVIRONMENT == "development"
)

# Sessions stay usable after commit so handlers can return ORM objects directly
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# One session per request
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


# All the models registered on Base are created by migrations / test fixtures
class Base(DeclarativeBase):
    pass
