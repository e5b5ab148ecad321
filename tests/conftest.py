"""Test configuration and fixtures."""

from typing import AsyncGenerator, Dict, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.auth.events import AuthEvents
from authcore.auth.models import ClientContext, RegisterRequest
from authcore.auth.passwords import PasswordService
from authcore.auth.service import AuthService
from authcore.auth.tokens import TokenService
from authcore.cache import CacheManager
from authcore.container import AuthContainer
from authcore.db import Database
from authcore.main import create_app
from authcore.utils.config import Settings

TEST_PASSWORD = "Str0ng!Pass"


class InMemoryCache(CacheManager):
    """Dict-backed stand-in for Redis; TTLs are recorded, not enforced."""

    def __init__(self) -> None:
        super().__init__("redis://unused")
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def health_check(self) -> bool:
        return self._connected

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        self.store[key] = value
        self.ttls[key] = ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_access_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        bcrypt_rounds=4,
        json_logs=False,
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """In-memory SQLite database with the schema created."""
    db = Database(settings.database_url)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def token_service(settings: Settings) -> TokenService:
    return TokenService.from_settings(settings)


@pytest.fixture
def password_service(settings: Settings) -> PasswordService:
    return PasswordService(rounds=settings.bcrypt_rounds)


@pytest.fixture
def events() -> AuthEvents:
    return AuthEvents()


@pytest.fixture
def auth_service(
    db_session: AsyncSession,
    token_service: TokenService,
    password_service: PasswordService,
    cache: InMemoryCache,
    events: AuthEvents,
    settings: Settings,
) -> AuthService:
    return AuthService(
        db_session,
        tokens=token_service,
        passwords=password_service,
        cache=cache,
        events=events,
        reset_prefix=settings.password_reset_prefix,
        reset_ttl=settings.password_reset_ttl,
    )


@pytest.fixture
def client_context() -> ClientContext:
    return ClientContext(user_agent="pytest-agent/1.0", ip_address="203.0.113.7")


@pytest.fixture
def register_request() -> RegisterRequest:
    return RegisterRequest(
        username="alice",
        email="alice@example.com",
        password=TEST_PASSWORD,
        display_name="Alice",
    )


@pytest.fixture
def container(
    settings: Settings,
    database: Database,
    cache: InMemoryCache,
    password_service: PasswordService,
    events: AuthEvents,
) -> AuthContainer:
    return AuthContainer(
        settings,
        database=database,
        cache=cache,
        passwords=password_service,
        events=events,
    )


@pytest.fixture
async def client(container: AuthContainer) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the app; the ASGI transport skips lifespan."""
    await container.cache.connect()
    app = create_app(container=container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
