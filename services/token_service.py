import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from jose import jwt, JWTError, ExpiredSignatureError

from core.config import Settings
from models.users import User
from schemas.auth_schemas import TokenPair
from services.refresh_token_store import RefreshTokenStore
from utils.durations import parse_duration


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenFailure(str, Enum):
    INVALID = "invalid"
    EXPIRED = "expired"


class TokenError(Exception):
    """
    Raised when a token cannot be trusted. `failure` tells a bad signature
    (or malformed token) apart from an elapsed expiry.
    """

    def __init__(self, failure: TokenFailure, detail: str = ""):
        self.failure = failure
        self.detail = detail
        super().__init__(detail or failure.value)


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    email: str
    role: str
    type: str
    jti: str
    iat: int
    exp: int

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class TokenSigner:
    """
    Signs claim sets and verifies signed tokens.

    Subclass to change the signing scheme (e.g. an asymmetric key pair for
    refresh tokens).
    """

    def sign(self, claims: Dict[str, Any]) -> str:
        raise NotImplementedError

    def verify(self, token: str) -> Dict[str, Any]:
        raise NotImplementedError


class JoseSigner(TokenSigner):
    """
    JWS signer backed by python-jose with one key and algorithm.
    """

    def __init__(self, key: str, algorithm: str = "HS256"):
        self.key = key
        self.algorithm = algorithm

    def sign(self, claims: Dict[str, Any]) -> str:
        return jwt.encode(claims, self.key, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.key, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenError(TokenFailure.EXPIRED, "Token has expired") from exc
        except JWTError as exc:
            raise TokenError(TokenFailure.INVALID, str(exc)) from exc


def _now() -> datetime:
    # JWT timestamps have whole-second precision
    return datetime.now(timezone.utc).replace(microsecond=0)


_REQUIRED_CLAIMS = ("sub", "email", "role", "type", "jti", "iat", "exp")


class TokenService:
    """
    Issues and verifies access/refresh token pairs.

    Both tokens carry the same claims (sub, email, role, jti) and differ in
    `type` and lifetime. Every issued refresh token is persisted through the
    RefreshTokenStore with the same expiry that is embedded in the token.
    """

    def __init__(
        self,
        access_signer: TokenSigner,
        refresh_signer: TokenSigner,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        store: type[RefreshTokenStore] = RefreshTokenStore,
    ):
        self.access_signer = access_signer
        self.refresh_signer = refresh_signer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.store = store

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            access_signer=JoseSigner(settings.JWT_SECRET, settings.JWT_ALGORITHM),
            refresh_signer=JoseSigner(settings.refresh_secret, settings.JWT_ALGORITHM),
            access_ttl=parse_duration(settings.JWT_ACCESS_TOKEN_EXPIRES_IN),
            refresh_ttl=parse_duration(settings.JWT_REFRESH_TOKEN_EXPIRES_IN),
        )

    @staticmethod
    def build_claims(user: User, token_type: TokenType, issued_at: datetime, ttl: timedelta) -> Dict[str, Any]:
        role = user.role.value if isinstance(user.role, Enum) else user.role
        return {
            "sub": str(user.id),
            "email": user.email,
            "role": role,
            "type": token_type.value,
            # Two tokens issued in the same second must still differ
            "jti": secrets.token_urlsafe(16),
            "iat": issued_at,
            "exp": issued_at + ttl,
        }

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        now = _now()
        claims = self.build_claims(user, TokenType.ACCESS, now, expires_delta or self.access_ttl)
        return self.access_signer.sign(claims)

    def create_refresh_token(self, user: User) -> tuple[str, datetime]:
        """
        Returns:
            Tuple of (refresh_token_string, expires_at)
        """
        now = _now()
        expires_at = now + self.refresh_ttl
        claims = self.build_claims(user, TokenType.REFRESH, now, self.refresh_ttl)
        return self.refresh_signer.sign(claims), expires_at

    def issue(self, db: Session, user: User) -> TokenPair:
        """
        Create an access + refresh token pair for a user and persist the
        refresh token.
        """
        access_token = self.create_access_token(user)
        refresh_token, expires_at = self.create_refresh_token(user)

        self.store.persist(db, refresh_token, user.id, expires_at)

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    @staticmethod
    def _verify(signer: TokenSigner, token: str) -> TokenPayload:
        claims = signer.verify(token)

        if any(claims.get(name) is None for name in _REQUIRED_CLAIMS):
            raise TokenError(TokenFailure.INVALID, "Token is missing required claims")

        return TokenPayload(**{name: claims[name] for name in _REQUIRED_CLAIMS})

    def verify_access_token(self, token: str) -> TokenPayload:
        """
        Check signature and expiry with the access signer.

        Raises:
            TokenError: INVALID or EXPIRED
        """
        return self._verify(self.access_signer, token)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        """
        Check signature and expiry with the refresh signer.

        Raises:
            TokenError: INVALID or EXPIRED
        """
        return self._verify(self.refresh_signer, token)
