from jose import jwt
from core.config import settings
from models.users import User, Role
from models.refresh_tokens import RefreshToken


def register_body(**overrides):
    body = {
        "email": "newuser@example.com",
        "username": "newuser",
        "password": "SecurePass123",
        "firstName": "New",
        "lastName": "User",
    }
    body.update(overrides)
    return body


async def test_register_success(client, session):
    """Test successful user registration."""
    response = await client.post("/auth/register", json=register_body())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"

    user = body["data"]["user"]
    tokens = body["data"]["tokens"]
    assert user["email"] == "newuser@example.com"
    assert user["username"] == "newuser"
    assert user["firstName"] == "New"
    assert user["role"] == "USER"
    assert user["isActive"] is True
    assert user["isVerified"] is False
    assert user["lastLoginAt"] is None
    assert "passwordHash" not in user
    assert "password" not in user

    payload = jwt.decode(tokens["accessToken"], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert payload["sub"] == user["id"]
    assert payload["type"] == "access"

    # Verify user and refresh token in DB
    db_user = session.query(User).filter(User.email == "newuser@example.com").first()
    assert db_user is not None
    assert db_user.role == Role.USER
    assert db_user.password_hash != "SecurePass123"

    stored = session.query(RefreshToken).filter(RefreshToken.token == tokens["refreshToken"]).first()
    assert stored is not None
    assert stored.user_id == db_user.id
    assert stored.is_revoked is False


async def test_register_without_optional_names(client):
    """Test that first/last name are optional."""
    response = await client.post("/auth/register", json={
        "email": "noname@example.com",
        "username": "noname",
        "password": "SecurePass123",
    })

    assert response.status_code == 201
    user = response.json()["data"]["user"]
    assert user["firstName"] is None
    assert user["lastName"] is None


async def test_register_duplicate_email(client, session):
    """Test that the same email with a different username is declined."""
    await client.post("/auth/register", json=register_body())
    response = await client.post("/auth/register", json=register_body(username="otheruser"))

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert response.json()["message"] == "Email already registered"

    users = session.query(User).filter(User.email == "newuser@example.com").all()
    assert len(users) == 1


async def test_register_duplicate_username(client, session):
    """Test that the same username with a different email is declined."""
    await client.post("/auth/register", json=register_body())
    response = await client.post("/auth/register", json=register_body(email="other@example.com"))

    assert response.status_code == 409
    assert response.json()["message"] == "Username already taken"


async def test_register_duplicate_email_and_username_reports_email(client):
    """Test that the email conflict wins when both keys clash."""
    await client.post("/auth/register", json=register_body())
    response = await client.post("/auth/register", json=register_body())

    assert response.status_code == 409
    assert response.json()["message"] == "Email already registered"


async def test_register_email_case_insensitive(client):
    """Test that email is case-insensitive."""
    first = await client.post("/auth/register", json=register_body(email="CaseSensitive@Example.COM"))
    assert first.status_code == 201
    assert first.json()["data"]["user"]["email"] == "casesensitive@example.com"

    response = await client.post("/auth/register", json=register_body(
        email="casesensitive@example.com",
        username="another",
    ))

    assert response.status_code == 409


async def test_register_username_normalized(client):
    """Test that usernames are stored lowercased and trimmed."""
    response = await client.post("/auth/register", json=register_body(username="  Mixed_Case1  "))

    assert response.status_code == 201
    assert response.json()["data"]["user"]["username"] == "mixed_case1"

    duplicate = await client.post("/auth/register", json=register_body(
        email="second@example.com",
        username="MIXED_CASE1",
    ))
    assert duplicate.status_code == 409


async def test_register_email_with_whitespace(client, session):
    """Test that leading/trailing whitespace in email is stripped."""
    response = await client.post("/auth/register", json=register_body(email="  whitespace@example.com  "))

    assert response.status_code == 201

    user = session.query(User).filter(User.email == "whitespace@example.com").first()
    assert user is not None


async def test_register_invalid_email(client, session):
    """Test invalid email format is declined."""
    response = await client.post("/auth/register", json=register_body(email="@incorrectemail.wrong"))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert "body.email" in body["errors"]

    assert session.query(User).count() == 0


async def test_register_missing_fields(client, session):
    """Test registration with missing required fields is declined."""
    response = await client.post("/auth/register", json={
        "email": "missingfields@example.com",
        "password": "SecurePass123",
    })

    assert response.status_code == 400
    assert "body.username" in response.json()["errors"]
    assert session.query(User).count() == 0


async def test_register_weak_passwords(client, session):
    """Test that each password rule is enforced."""
    weak_passwords = [
        "Sh0rt",                 # too short
        "alllowercase123",       # no uppercase
        "ALLUPPERCASE123",       # no lowercase
        "NoDigitsHere",          # no digit
        "A1" + "a" * 71,         # longer than 72
    ]

    for password in weak_passwords:
        response = await client.post("/auth/register", json=register_body(password=password))
        assert response.status_code == 400, password
        assert "body.password" in response.json()["errors"]

    assert session.query(User).count() == 0


async def test_register_invalid_usernames(client):
    """Test username length and character rules."""
    for username in ["ab", "a" * 31, "has space", "dash-name", "émile"]:
        response = await client.post("/auth/register", json=register_body(username=username))
        assert response.status_code == 400, username


async def test_register_unicode_names(client, session):
    """Test that Unicode characters in names are supported."""
    response = await client.post("/auth/register", json=register_body(firstName="José", lastName="محمد"))

    assert response.status_code == 201

    user = session.query(User).filter(User.email == "newuser@example.com").first()
    assert user.first_name == "José"
    assert user.last_name == "محمد"


async def test_register_accepts_snake_case_fields(client):
    """Test that snake_case field names are accepted as well as camelCase."""
    response = await client.post("/auth/register", json={
        "email": "snake@example.com",
        "username": "snake",
        "password": "SecurePass123",
        "first_name": "Snake",
    })

    assert response.status_code == 201
    assert response.json()["data"]["user"]["firstName"] == "Snake"
