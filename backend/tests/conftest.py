"""Pytest fixtures for the Delicious Stores backend tests."""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from delicious.database import Base, get_db
from delicious.main import app
from delicious.models import Review, Store, User
from delicious.services import stores as store_service


TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

# NullPool: every test runs on its own event loop.
engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with test_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def db():
    async with test_session() as session:
        yield session


@pytest_asyncio.fixture
async def sample_user(db: AsyncSession) -> User:
    user = User(
        id=uuid.uuid4(),
        email="wes@example.com",
        name="Wes",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def store_data(author_id: uuid.UUID | None, name: str = "Clean Bean", **overrides) -> dict:
    """Submitted form data for a valid store."""
    data = {
        "name": name,
        "description": "Coffee and cake",
        "tags": ["Wifi"],
        "location": {
            "coordinates": [-79.3832, 43.6532],
            "address": "1 Queen St W, Toronto",
        },
        "photo": None,
        "author_id": author_id,
    }
    data.update(overrides)
    return data


@pytest.fixture
def store_form(sample_user: User):
    """Factory for valid form data authored by ``sample_user``."""
    author_id = sample_user.id

    def _form(name: str = "Clean Bean", **overrides) -> dict:
        return store_data(overrides.pop("author_id", author_id), name, **overrides)

    return _form


@pytest_asyncio.fixture
async def make_store(db: AsyncSession, sample_user: User):
    """Create a store through the service, returning the saved ``Store``."""
    author_id = sample_user.id

    async def _make(name: str = "Clean Bean", **overrides) -> Store:
        entry = await store_service.create_store(db, store_data(author_id, name, **overrides))
        return entry.store

    return _make


@pytest_asyncio.fixture
async def add_reviews(db: AsyncSession, sample_user: User):
    """Attach reviews with the given ratings to a store id."""
    author_id = sample_user.id

    async def _add(store_id: uuid.UUID, ratings: list[int]) -> list[Review]:
        reviews = [
            Review(store_id=store_id, author_id=author_id, text=f"{rating} stars", rating=rating)
            for rating in ratings
        ]
        db.add_all(reviews)
        await db.commit()
        return reviews

    return _add
