from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import AppError, ErrorKind, not_found
from models.users import User
from schemas.auth_schemas import AuthResult, RegisterRequest, TokenPair, UserResponse
from services.refresh_token_store import RefreshTokenStore, as_utc
from services.token_service import TokenError, TokenFailure, TokenService, TokenType
from utils.hashing import get_password_hash, verify_password
from utils.logger import get_logger

logger = get_logger(__name__)

# Same text for "no such email" and "wrong password" so neither reveals which
# emails are registered
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DISABLED = "Account is disabled"
TOKEN_REVOKED = "Token has been revoked"
TOKEN_EXPIRED = "Token has expired"


class AuthService:
    """
    Register, login, refresh, logout and current-user lookups.

    Refresh tokens move ISSUED -> ROTATED/REVOKED, or become EXPIRED once
    expires_at passes. No transition leads back to ISSUED.
    """

    def __init__(self, tokens: TokenService, store: type[RefreshTokenStore] = RefreshTokenStore):
        self.tokens = tokens
        self.store = store

    def register(self, db: Session, data: RegisterRequest) -> AuthResult:
        """
        Create a user and issue the first token pair.

        Flow:
        1. Reject a taken email, then a taken username (email wins if both clash)
        2. Hash password and create the user
        3. Issue tokens (refresh token persisted)
        """
        email = data.email.lower().strip()
        username = data.username.lower().strip()

        if db.query(User).filter(User.email == email).first():
            logger.warning(
                "Registration attempt with existing email",
                extra={"email": email}
            )
            raise AppError(ErrorKind.CONFLICT, "Email already registered")

        if db.query(User).filter(User.username == username).first():
            logger.warning(
                "Registration attempt with existing username",
                extra={"username": username}
            )
            raise AppError(ErrorKind.CONFLICT, "Username already taken")

        user = User(
            email=email,
            username=username,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent registration won the race past the checks above
            db.rollback()
            logger.warning(
                "Registration lost a uniqueness race",
                extra={"email": email, "username": username}
            )
            raise AppError(ErrorKind.CONFLICT, "User already exists")
        db.refresh(user)

        tokens = self.tokens.issue(db, user)

        logger.info(
            "User registered",
            extra={"user_id": user.id, "email": user.email}
        )
        return AuthResult(user=UserResponse.model_validate(user), tokens=tokens)

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        email = email.lower().strip()
        user = db.query(User).filter(User.email == email).first()

        if not user:
            logger.warning(
                "Login failed - user not found",
                extra={"email": email}
            )
            raise AppError(ErrorKind.AUTHENTICATION, INVALID_CREDENTIALS)

        if not user.is_active:
            logger.warning(
                "Login failed - inactive account",
                extra={"user_id": user.id, "email": email}
            )
            raise AppError(ErrorKind.AUTHENTICATION, ACCOUNT_DISABLED)

        if not verify_password(password, user.password_hash):
            logger.warning(
                "Login failed - invalid password",
                extra={"user_id": user.id, "email": email}
            )
            raise AppError(ErrorKind.AUTHENTICATION, INVALID_CREDENTIALS)

        user.last_login_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)

        # Earlier sessions stay valid; a user may be logged in on several devices
        tokens = self.tokens.issue(db, user)

        logger.info(
            "User logged in",
            extra={"user_id": user.id, "email": user.email}
        )
        return AuthResult(user=UserResponse.model_validate(user), tokens=tokens)

    def refresh(self, db: Session, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair (rotation).

        The presented token is revoked before the new pair is issued, so it
        can never be used twice.

        Raises:
            AppError(AUTHENTICATION): invalid, wrong type, revoked, unknown or expired token
        """
        try:
            payload = self.tokens.verify_refresh_token(refresh_token)
        except TokenError as exc:
            if exc.failure is TokenFailure.EXPIRED:
                raise AppError(ErrorKind.AUTHENTICATION, TOKEN_EXPIRED)
            raise AppError(ErrorKind.AUTHENTICATION, "Invalid refresh token")

        if payload.type != TokenType.REFRESH.value:
            raise AppError(ErrorKind.AUTHENTICATION, "Invalid token type")

        stored = self.store.find_valid(db, refresh_token)

        # Unknown and revoked tokens get the same answer
        if stored is None or stored.is_revoked:
            logger.warning(
                "Refresh rejected - token revoked or unknown",
                extra={"user_id": payload.sub}
            )
            raise AppError(ErrorKind.AUTHENTICATION, TOKEN_REVOKED)

        if as_utc(stored.expires_at) < datetime.now(timezone.utc):
            raise AppError(ErrorKind.AUTHENTICATION, TOKEN_EXPIRED)

        user = stored.user
        if not user.is_active:
            logger.warning(
                "Refresh rejected - inactive account",
                extra={"user_id": user.id}
            )
            raise AppError(ErrorKind.AUTHENTICATION, ACCOUNT_DISABLED)

        # The conditional UPDATE decides between concurrent refreshes of one token
        if self.store.revoke(db, refresh_token) == 0:
            logger.warning(
                "Refresh rejected - token revoked concurrently",
                extra={"user_id": user.id}
            )
            raise AppError(ErrorKind.AUTHENTICATION, TOKEN_REVOKED)

        tokens = self.tokens.issue(db, user)

        logger.info("Refresh token rotated", extra={"user_id": user.id})
        return tokens

    def logout(self, db: Session, user_id: str, refresh_token: Optional[str] = None) -> None:
        """
        Revoke one refresh token of the user, or all of them when no token is
        given. Revoking nothing is not an error.
        """
        if refresh_token:
            revoked = self.store.revoke_for_user(db, refresh_token, user_id)
        else:
            revoked = self.store.revoke_all_for_user(db, user_id)

        logger.info(
            "User logged out",
            extra={"user_id": user_id, "all_sessions": not refresh_token, "revoked": revoked}
        )

    @staticmethod
    def get_current_user(db: Session, user_id: str) -> UserResponse:
        user = db.query(User).filter(User.id == user_id).one_or_none()

        if not user:
            raise not_found("User")

        return UserResponse.model_validate(user)

    @staticmethod
    def get_active_user_by_id(db: Session, user_id: str) -> User | None:
        return db.query(User).filter(User.id == user_id, User.is_active == True).one_or_none()  # noqa: E712
