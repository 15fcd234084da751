from jose import jwt
from core.config import settings
from models.users import User
from models.refresh_tokens import RefreshToken


async def test_login_success(client, session, verified_user):
    """Test successfull user login."""

    response = await client.post("/auth/login", json={
        "email": verified_user.email,
        "password": "TestPassword123"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"

    # Verify response contains tokens
    tokens = body["data"]["tokens"]
    access_token = tokens["accessToken"]
    refresh_token = tokens["refreshToken"]

    assert isinstance(access_token, str)
    assert len(access_token) > 0

    assert isinstance(refresh_token, str)
    assert len(refresh_token) > 0

    # Verify token claims
    payload = jwt.decode(access_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

    assert payload["sub"] == verified_user.id
    assert payload["email"] == verified_user.email
    assert payload["role"] == "USER"
    assert payload["type"] == "access"
    assert payload["jti"]

    # Verify user in body never leaks the hash
    user = body["data"]["user"]
    assert user["id"] == verified_user.id
    assert "passwordHash" not in user
    assert user["lastLoginAt"] is not None

    stored = session.query(RefreshToken).filter(RefreshToken.token == refresh_token).first()
    assert stored is not None
    assert stored.user_id == verified_user.id


async def test_login_updates_last_login(client, session, verified_user):
    """Test that a successful login records lastLoginAt."""
    assert verified_user.last_login_at is None

    response = await client.post("/auth/login", json={
        "email": verified_user.email,
        "password": "TestPassword123"
    })
    assert response.status_code == 200

    session.expire_all()
    user = session.query(User).filter(User.id == verified_user.id).first()
    assert user.last_login_at is not None


async def test_login_email_case_insensitive(client, verified_user):
    """Test login with differently cased email."""
    response = await client.post("/auth/login", json={
        "email": "  VERIFIED@Example.com ",
        "password": "TestPassword123"
    })

    assert response.status_code == 200


async def test_login_wrong_password(client, verified_user):
    """Test login with incorrect password."""

    response = await client.post("/auth/login", json={
        "email": verified_user.email,
        "password": "WrongPassword123"
    })

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["message"] == "Invalid email or password"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_login_nonexistent_user(client):
    """Test login with non-existent email."""
    response = await client.post("/auth/login", json={
        "email": "nonexistent@example.com",
        "password": "Password123"
    })

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_login_unknown_email_and_wrong_password_indistinguishable(client, verified_user):
    """Test that the response does not reveal whether the email exists."""
    unknown = await client.post("/auth/login", json={
        "email": "nobody@example.com",
        "password": "TestPassword123"
    })
    wrong = await client.post("/auth/login", json={
        "email": verified_user.email,
        "password": "WrongPassword123"
    })

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


async def test_login_inactive_user(client, session, make_user):
    """Test login for an inactive user"""
    make_user(email="inactive@example.com", username="inactive", is_active=False)

    response = await client.post("/auth/login", json={
        "email": "inactive@example.com",
        "password": "TestPassword123"
    })

    assert response.status_code == 401
    assert response.json()["message"] == "Account is disabled"

    assert session.query(RefreshToken).count() == 0


async def test_login_empty_password(client, verified_user):
    """Test that an empty password fails validation."""
    response = await client.post("/auth/login", json={
        "email": verified_user.email,
        "password": ""
    })

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"
    assert response.json()["errors"]["body.password"] == ["Password is required"]


async def test_login_invalid_email(client):
    """Test that a malformed email fails validation."""
    response = await client.post("/auth/login", json={
        "email": "not-an-email",
        "password": "TestPassword123"
    })

    assert response.status_code == 400
    assert "body.email" in response.json()["errors"]


async def test_login_multiple_sessions(client, session, verified_user):
    """Test that each login issues a distinct refresh token and keeps earlier ones valid."""
    first = await client.post("/auth/login", json={"email": verified_user.email, "password": "TestPassword123"})
    second = await client.post("/auth/login", json={"email": verified_user.email, "password": "TestPassword123"})

    first_refresh = first.json()["data"]["tokens"]["refreshToken"]
    second_refresh = second.json()["data"]["tokens"]["refreshToken"]
    assert first_refresh != second_refresh

    stored = session.query(RefreshToken).filter(RefreshToken.user_id == verified_user.id).all()
    assert len(stored) == 2
    assert all(not token.is_revoked for token in stored)
