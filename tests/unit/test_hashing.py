from utils.hashing import verify_password, get_password_hash

def test_password_hashing():
    password = "SuperSecret123"
    hashed = get_password_hash(password)
    assert hashed != password
    assert hashed.startswith("$2b$")


def test_same_password_hashes_differently():
    """Each hash carries its own salt."""
    first = get_password_hash("SuperSecret123")
    second = get_password_hash("SuperSecret123")

    assert first != second
    assert verify_password("SuperSecret123", first) is True
    assert verify_password("SuperSecret123", second) is True


def test_password_verification():
    password = "SuperSecret123"
    hashed = get_password_hash(password)

    assert verify_password(password, hashed) is True
    assert verify_password("WrongPassword123", hashed) is False
    assert verify_password("supersecret123", hashed) is False

    long_pass = "a" * 100
    hashed_long = get_password_hash(long_pass)
    assert verify_password(long_pass, hashed_long) is True


def test_verify_against_malformed_hash():
    """A stored value that is not a bcrypt hash never verifies."""
    assert verify_password("SuperSecret123", "not-a-bcrypt-hash") is False
    assert verify_password("SuperSecret123", "") is False
