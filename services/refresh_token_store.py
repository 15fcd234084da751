from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from core.exceptions import AppError, ErrorKind
from models.refresh_tokens import RefreshToken
from utils.logger import get_logger

logger = get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """
    SQLite hands back naive datetimes even for timezone-aware columns.
    Stored values are always UTC, so a naive value is tagged as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RefreshTokenStore:
    """
    Persistence for issued refresh tokens; the only writer of refresh_tokens.

    Rows are insert-only apart from flipping is_revoked. Whether a token may
    still be exchanged is decided by the caller from the returned row.
    """

    @staticmethod
    def persist(db: Session, token: str, user_id: str, expires_at: datetime) -> RefreshToken:
        """
        Store a newly issued refresh token.

        Raises:
            AppError(CONFLICT): the token string is already stored
        """
        record = RefreshToken(token=token, user_id=user_id, expires_at=expires_at)
        db.add(record)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.error(
                "Refresh token persist failed - duplicate token",
                extra={"user_id": user_id}
            )
            raise AppError(ErrorKind.CONFLICT, "Refresh token already exists")

        db.refresh(record)
        return record

    @staticmethod
    def find_valid(db: Session, token: str) -> Optional[RefreshToken]:
        """
        Look up a token together with its owner. Returns None if it was never
        stored (or its user was deleted).
        """
        return (
            db.query(RefreshToken)
            .options(joinedload(RefreshToken.user))
            .filter(RefreshToken.token == token)
            .one_or_none()
        )

    @staticmethod
    def revoke(db: Session, token: str) -> int:
        """
        Mark a token revoked. Returns rows changed: 0 when the token is unknown
        or was already revoked (possibly by a concurrent request).
        """
        count = db.query(RefreshToken).filter(
            RefreshToken.token == token,
            RefreshToken.is_revoked == False  # noqa: E712
        ).update({"is_revoked": True}, synchronize_session="fetch")
        db.commit()
        return count

    @staticmethod
    def revoke_for_user(db: Session, token: str, user_id: str) -> int:
        """
        Revoke a token only if it belongs to user_id. Returns rows changed.
        """
        count = db.query(RefreshToken).filter(
            RefreshToken.token == token,
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked == False  # noqa: E712
        ).update({"is_revoked": True}, synchronize_session="fetch")
        db.commit()
        return count

    @staticmethod
    def revoke_all_for_user(db: Session, user_id: str) -> int:
        """
        Revoke every refresh token of a user (logout from all devices).
        """
        count = db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked == False  # noqa: E712
        ).update({"is_revoked": True}, synchronize_session="fetch")
        db.commit()
        return count

    @staticmethod
    def delete_expired(db: Session, now: Optional[datetime] = None) -> int:
        """
        Delete rows that can never be used again: expired or revoked.
        Used by the periodic reaper script.
        """
        now = now or datetime.now(timezone.utc)
        count = db.query(RefreshToken).filter(
            or_(RefreshToken.expires_at < now, RefreshToken.is_revoked == True)  # noqa: E712
        ).delete(synchronize_session="fetch")
        db.commit()

        logger.info("Pruned refresh tokens", extra={"deleted": count})
        return count
