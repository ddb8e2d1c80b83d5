"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite schema per test
- Users with JWT session tokens
- HTTPX AsyncClient with proper headers
- A fake WhatsApp bridge driving an isolated ChannelManager
"""
import os
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Generator

# Configure before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "dev"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-at-least-32-bytes"
os.environ["WHATSAPP_BRIDGE_URL"] = ""
os.environ["WHATSAPP_BRIDGE_SECRET"] = "test-bridge-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from taskflow.main import app
from taskflow.core.deps import COOKIE_NAME, get_channel_manager, get_db
from taskflow.core.security import create_session_token, hash_password
from taskflow.db.base import Base
from taskflow.db.enums import ChannelEventKind, Role
from taskflow.db.models import User
from taskflow.db.session import SessionLocal, engine
from taskflow.services.channel_manager import ChannelManager
from taskflow.services.whatsapp_bridge import TransportError

TEST_PASSWORD = "secret123"
BRIDGE_SECRET = "test-bridge-secret"
CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function", autouse=True)
def schema() -> Generator[None, None, None]:
    """Create every table before the test and drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(schema) -> Generator[Session, None, None]:
    """
    Database session for the test.

    All sessions share one in-memory connection, so fixtures commit
    (not just flush) for their rows to be visible everywhere.
    """
    session = SessionLocal()
    yield session
    session.close()


def make_user(
    db: Session,
    username: str | None = None,
    role: Role = Role.STANDARD,
    password: str = TEST_PASSWORD,
    is_active: bool = True,
) -> User:
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password),
        first_name="Test",
        last_name="User",
        role=role.value,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db: Session) -> User:
    return make_user(db, username="alice")


@pytest.fixture(scope="function")
def other_user(db: Session) -> User:
    return make_user(db, username="bob")


@pytest.fixture(scope="function")
def admin_user(db: Session) -> User:
    return make_user(db, username="root", role=Role.ADMIN)


@pytest.fixture(scope="function")
def user_factory(db: Session):
    """Create extra users: user_factory(username=..., role=...)."""
    def factory(**kwargs) -> User:
        return make_user(db, **kwargs)
    return factory


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def token_for(user: User) -> str:
    return create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    """Create JWT token for test user."""
    return TestAuth(user=test_user, token=token_for(test_user))


@pytest.fixture(scope="function")
def bearer_headers():
    """Authorization header for any user (no cookie, no CSRF header)."""
    def build(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}
    return build


# =============================================================================
# Client Fixtures
# =============================================================================

def _client(db: Session, **kwargs) -> AsyncClient:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", **kwargs)


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    async with _client(db) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with JWT cookie and CSRF header.
    """
    async with _client(
        db,
        cookies={test_auth.cookie_name: test_auth.token},
        headers=CSRF_HEADERS,
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(
    db: Session,
    admin_user: User,
) -> AsyncGenerator[AsyncClient, None]:
    async with _client(
        db,
        cookies={COOKIE_NAME: token_for(admin_user)},
        headers=CSRF_HEADERS,
    ) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# WhatsApp Bridge Fakes
# =============================================================================

class FakeTransport:
    """In-memory ChannelTransport; emits a QR event on start when asked."""

    def __init__(self, bridge: "FakeBridge", owner_id: uuid.UUID):
        self.bridge = bridge
        self.owner_id = owner_id
        self.started = False
        self.stopped = False
        self.sent: list[tuple[str, str]] = []

    async def start(self) -> None:
        if self.bridge.fail_start:
            raise TransportError("bridge refused session")
        self.started = True
        if self.bridge.emit_qr and self.bridge.manager is not None:
            self.bridge.manager.publish(
                self.owner_id,
                ChannelEventKind.QR,
                {"qr": f"qr-{self.owner_id.hex[:8]}"},
            )

    async def stop(self) -> None:
        if self.bridge.fail_stop:
            raise TransportError("bridge gone")
        self.stopped = True

    async def send_message(self, to: str, body: str) -> None:
        if self.bridge.fail_send:
            raise TransportError("bridge rejected message")
        self.sent.append((to, body))


@dataclass
class FakeBridge:
    """Transport factory recording every transport it builds."""
    manager: ChannelManager | None = None
    emit_qr: bool = True
    unconfigured: bool = False
    fail_start: bool = False
    fail_stop: bool = False
    fail_send: bool = False
    created: list[FakeTransport] = field(default_factory=list)

    def __call__(self, owner_id: uuid.UUID) -> FakeTransport:
        if self.unconfigured:
            raise TransportError("WHATSAPP_BRIDGE_URL is not configured")
        transport = FakeTransport(self, owner_id)
        self.created.append(transport)
        return transport

    def latest(self, owner_id: uuid.UUID) -> FakeTransport:
        return [t for t in self.created if t.owner_id == owner_id][-1]


@pytest.fixture(scope="function")
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture(scope="function")
async def manager(bridge: FakeBridge, schema) -> AsyncGenerator[ChannelManager, None]:
    """ChannelManager on the fake bridge, injected into the app."""
    channel_manager = ChannelManager(SessionLocal, bridge, connect_timeout=0.5)
    bridge.manager = channel_manager
    app.dependency_overrides[get_channel_manager] = lambda: channel_manager
    yield channel_manager
    await channel_manager.shutdown()
    app.dependency_overrides.pop(get_channel_manager, None)
