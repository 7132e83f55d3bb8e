"""Shared pytest fixtures."""

import os
from unittest.mock import MagicMock

import httpx
import pytest
import yaml
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from deskpress.config import GitHubConfig, clear_settings_cache  # noqa: E402
from deskpress.db.base import Base  # noqa: E402
from deskpress.db.models import User  # noqa: E402
from deskpress.lib.github import GitHubClient  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    """Run every test with a known secret and no app.yaml in scope."""
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Write an app.yaml into the working directory."""
    def _create(config: dict):
        path = tmp_path / "app.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(config, f)
        return path

    return _create


@pytest.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def admin_user(db_session):
    user = User(email="admin@example.com", name="Admin", is_admin=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def plain_user(db_session):
    user = User(email="someone@example.com", name="Someone")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def github_config():
    return GitHubConfig(owner="acme", repo="site", token="ghp_test", posts_path="public/posts")


@pytest.fixture
def github_factory(github_config):
    """Build a GitHubClient whose requests go to ``handler``."""
    def _make(handler, config: GitHubConfig | None = None) -> GitHubClient:
        return GitHubClient(config or github_config, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def mock_request_factory():
    """Factory fixture that returns mock connections with a session dict."""
    def _make(session=None):
        request = MagicMock()
        request.session = session if session is not None else {}
        return request

    return _make
