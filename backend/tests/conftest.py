import pytest
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from taskhub.main import app
from taskhub.db.database import Base, get_db
from taskhub.core.security import create_access_token
from taskhub.realtime import socket as socket_module


@pytest.fixture
async def test_engine(tmp_path):
    # One on-disk SQLite file per test so connections share state and never cross event loops
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'taskhub_test.db'}",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
def sio_emit(monkeypatch):
    """Capture Socket.IO emits instead of sending them."""
    emit = AsyncMock()
    monkeypatch.setattr(socket_module.sio, "emit", emit)
    return emit


@pytest.fixture
async def client(test_engine, sio_emit):
    """HTTP client bound to the FastAPI app with get_db pointed at the test engine."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_token():
    def _make_token(user_id: int, role: str = "user") -> str:
        return create_access_token({"sub": str(user_id), "role": role})
    return _make_token


@pytest.fixture
def auth_headers(make_token):
    def _auth_headers(user_id: int, role: str = "user") -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}
    return _auth_headers
