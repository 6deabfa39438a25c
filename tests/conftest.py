import asyncio
import os
import uuid
import pytest
import pytest_asyncio
import respx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from db_assistant.core.security import create_access_token, hash_password
from db_assistant.main import app
from db_assistant.core import models
from db_assistant.core.database import Base, get_db
from db_assistant.core.proxy_client import ProxyClient, get_proxy_client

# Force to use a dedicated test db for tests
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_db_assistant.db"
)
PROXY_URL = "http://proxy.test"

# NullPool: every test gets fresh connections on its own event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestingSessionLocal = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def _create_tables():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _drop_tables():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# Create the schema once per run and drop it after tests are done
@pytest.fixture(scope="session", autouse=True)
def set_up_db():
    asyncio.run(_create_tables())
    yield  # Tests happen here
    asyncio.run(_drop_tables())


# Create session and rollback once it is done
@pytest_asyncio.fixture(scope="function")
async def db_session():
    async with TestingSessionLocal() as session:
        yield session
        await session.rollback()
        await session.close()


# Every proxy call in API tests goes through this mock
@pytest.fixture(scope="function")
def proxy_mock():
    with respx.mock(base_url=PROXY_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, proxy_mock):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_proxy_client] = lambda: ProxyClient(base_url=PROXY_URL)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, prefix: str) -> models.User:
    # Unique name and email for each test to avoid duplicates
    suffix = uuid.uuid4().hex[:8]
    user = models.User(
        name=f"{prefix}_{suffix}",
        email=f"{prefix}_{suffix}@example.com",
        password=hash_password("password123"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


# User
@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession):
    return await _make_user(db_session, "test")


# Somebody else, to check project isolation
@pytest_asyncio.fixture(scope="function")
async def other_user(db_session: AsyncSession):
    return await _make_user(db_session, "other")


# Token for user
@pytest_asyncio.fixture(scope="function")
async def auth_headers_user(test_user):
    token = create_access_token({"user_id": test_user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def auth_headers_other(other_user):
    token = create_access_token({"user_id": other_user.id})
    return {"Authorization": f"Bearer {token}"}


async def make_project(db_session: AsyncSession, owner: models.User, **flags):
    project = models.Project(
        user_id=owner.id,
        name=f"Test Project {uuid.uuid4().hex[:8]}",
        description="test database",
        database_type="postgresql",
        connection_string="postgres://user:pass@db:5432/shop",
    )
    db_session.add(project)
    await db_session.flush()

    permission = dict(allow_ddl=True, allow_write=True, allow_read=True, allow_delete=True)
    permission.update(flags)
    db_session.add(models.Permission(project_id=project.id, **permission))

    await db_session.commit()
    await db_session.refresh(project)
    return project


# Project with everything allowed
@pytest_asyncio.fixture(scope="function")
async def test_project(db_session: AsyncSession, test_user):
    return await make_project(db_session, test_user)


# Projects of test_user with chosen permission flags
@pytest_asyncio.fixture(scope="function")
async def project_factory(db_session: AsyncSession, test_user):
    async def factory(**flags):
        return await make_project(db_session, test_user, **flags)

    return factory
