#!/usr/bin/env python3
"""
Delete refresh tokens that can no longer be used (expired or revoked).

Meant to run on a schedule, e.g. hourly from cron:
    0 * * * * cd /srv/app && python -m scripts.prune_refresh_tokens
"""
from core.config import settings
from core.database import build_engine, build_session_factory
from core.logging_config import setup_logging
import models  # noqa: F401
from services.refresh_token_store import RefreshTokenStore


def main() -> int:
    setup_logging(log_level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)

    engine = build_engine(settings.DATABASE_URL)
    db = build_session_factory(engine)()
    try:
        deleted = RefreshTokenStore.delete_expired(db)
    finally:
        db.close()
        engine.dispose()

    print(f"Deleted {deleted} refresh token(s)")
    return deleted


if __name__ == "__main__":
    main()
