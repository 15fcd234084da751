#!/usr/bin/env python3
"""
Seed an admin and a regular user for local development.

Usage:
    python -m scripts.seed
    python -m scripts.seed --admin-password 'Adm1nPassword' --user-password 'Us3rPassword'

Existing accounts (matched by email) are left untouched.
"""
import argparse

from sqlalchemy.orm import Session

import models  # noqa: F401
from core.config import settings
from core.database import Base, build_engine, build_session_factory
from core.logging_config import get_logger, setup_logging
from models.users import Role, User
from utils.hashing import get_password_hash

logger = get_logger(__name__)


def ensure_user(db: Session, email: str, username: str, password: str, role: Role,
                first_name: str, last_name: str) -> tuple[User, bool]:
    """
    Returns:
        Tuple of (user, created)
    """
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing, False

    user = User(
        email=email,
        username=username,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def seed(db: Session, admin_password: str, user_password: str) -> list[tuple[User, bool]]:
    return [
        ensure_user(db, "admin@example.com", "admin", admin_password, Role.ADMIN, "Admin", "User"),
        ensure_user(db, "user@example.com", "testuser", user_password, Role.USER, "Test", "User"),
    ]


def main():
    ap = argparse.ArgumentParser(description="Seed development users")
    ap.add_argument("--admin-password", default="Admin12345")
    ap.add_argument("--user-password", default="User12345")
    args = ap.parse_args()

    setup_logging(log_level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)

    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        for user, created in seed(db, args.admin_password, args.user_password):
            logger.info(
                "Seed user %s", "created" if created else "already present",
                extra={"user_id": user.id, "email": user.email, "role": user.role.value}
            )
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    main()
