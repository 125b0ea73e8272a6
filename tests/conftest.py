from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from coursehours.main import app
from coursehours.db.session import Base, enable_sqlite_foreign_keys, get_db, get_sessionmaker


@pytest.fixture()
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh on-disk SQLite database per test; on-disk so concurrent sessions share it."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    test_engine = create_async_engine(url, echo=False, future=True)
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override the FastAPI dependencies."""
    async with session_factory() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_sessionmaker] = lambda: session_factory
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_student(client: AsyncClient, name: str = "Alice", **extra) -> dict:
    response = await client.post("/api/v1/students", json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


async def create_package(
    client: AsyncClient,
    name: str = "Piano 20h",
    total_hours: float = 20,
    course_type: str = "piano",
    price: float = 1000,
) -> dict:
    response = await client.post(
        "/api/v1/course-packages",
        json={"name": name, "total_hours": total_hours, "course_type": course_type, "price": price},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def assign_package(client: AsyncClient, student_id: int, course_package_id: int, remaining_hours=None) -> dict:
    payload = {"student_id": student_id, "course_package_id": course_package_id}
    if remaining_hours is not None:
        payload["remaining_hours"] = remaining_hours
    response = await client.post("/api/v1/student-course-packages", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_activity(
    client: AsyncClient,
    name: str = "Weekend camp",
    course_type: str = "piano",
    days: int = 1,
    total_hours: float = 2,
) -> dict:
    response = await client.post(
        "/api/v1/activity-rules",
        json={"name": name, "course_type": course_type, "days": days, "total_hours": total_hours},
    )
    assert response.status_code == 201, response.text
    return response.json()


def hours(value) -> Decimal:
    """Hour amounts come back from the API as decimal strings."""
    return Decimal(str(value))
