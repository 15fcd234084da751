import os

# Must be set before any application module reads settings
os.environ["ENV"] = "testing"
os.environ.setdefault("JWT_SECRET", "test-secret-key-not-for-production")
# Refresh tokens share the access secret, so token type is what tells them apart
os.environ["JWT_REFRESH_SECRET"] = ""
os.environ["BCRYPT_ROUNDS"] = "4"  # fast hashes in tests

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session
from typing import Generator

from main import app
from core.database import Base, build_engine, build_session_factory
from models.users import Role, User
from utils.deps import get_db
from utils.hashing import get_password_hash

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

TEST_PASSWORD = "TestPassword123"

engine = build_engine(SQLALCHEMY_DATABASE_URL)

TestingSessionLocal = build_session_factory(engine)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(session: Session):
    """
    Yields an HTTP client that talks to the app using the test database.
    """
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def create_user(
    session: Session,
    email: str = "verified@example.com",
    username: str = "verified_user",
    password: str = TEST_PASSWORD,
    role: Role = Role.USER,
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        username=username,
        password_hash=get_password_hash(password),
        first_name="Test",
        last_name="User",
        role=role,
        is_active=is_active,
        is_verified=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def verified_user(session: Session) -> User:
    return create_user(session)


@pytest.fixture
def admin_user(session: Session) -> User:
    return create_user(session, email="admin@example.com", username="admin", role=Role.ADMIN)


@pytest.fixture
def super_admin_user(session: Session) -> User:
    return create_user(session, email="root@example.com", username="root", role=Role.SUPER_ADMIN)


@pytest.fixture
def make_user(session: Session):
    """
    Factory for extra users: make_user(email=..., username=..., role=..., is_active=...).
    """
    def _make_user(**kwargs) -> User:
        return create_user(session, **kwargs)

    return _make_user


@pytest.fixture
def login(client: AsyncClient):
    """
    Log in through the API and return the token pair ({accessToken, refreshToken}).
    """
    async def _login(email: str, password: str = TEST_PASSWORD) -> dict:
        response = await client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["data"]["tokens"]

    return _login


@pytest.fixture
def bearer():
    """
    Authorization header for an access token.
    """
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _bearer
