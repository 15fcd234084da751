from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Iterable, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import AppError, ErrorKind
from models.users import Role
from services.auth_service import AuthService
from services.token_service import TokenError, TokenFailure, TokenService, TokenType


def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


@lru_cache
def get_token_service() -> TokenService:
    return TokenService.from_settings(settings)


def get_auth_service(tokens: Annotated[TokenService, Depends(get_token_service)]) -> AuthService:
    return AuthService(tokens)

auth_service_dependency = Annotated[AuthService, Depends(get_auth_service)]


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    role: Role


bearer_scheme = HTTPBearer(auto_error=False)


def authenticate(
    request: Request,
    db: db_dependency,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> CurrentUser:
    """
    Resolve the caller from an `Authorization: Bearer <access token>` header.

    The user row is always re-read, so deactivating an account locks out its
    access tokens immediately instead of at their expiry.
    """
    if credentials is None or not credentials.credentials:
        raise AppError(ErrorKind.AUTHENTICATION, "No token provided")

    try:
        payload = tokens.verify_access_token(credentials.credentials)
    except TokenError as exc:
        if exc.failure is TokenFailure.EXPIRED:
            raise AppError(ErrorKind.AUTHENTICATION, "Token expired")
        raise AppError(ErrorKind.AUTHENTICATION, "Invalid token")

    # A refresh token must never work as a session credential
    if payload.type != TokenType.ACCESS.value:
        raise AppError(ErrorKind.AUTHENTICATION, "Invalid token type")

    user = AuthService.get_active_user_by_id(db, payload.sub)
    if user is None:
        raise AppError(ErrorKind.AUTHENTICATION, "User not found or inactive")

    current_user = CurrentUser(id=user.id, email=user.email, role=user.role)
    request.state.user = current_user
    return current_user

user_dependency = Annotated[CurrentUser, Depends(authenticate)]


def authorize(allowed_roles: Iterable[Role]):
    """
    Dependency factory allowing only the given roles. Must run after
    `authenticate`.

    Usage:
        @router.delete("/{id}", dependencies=[Depends(authorize([Role.ADMIN]))])
    """
    allowed = frozenset(allowed_roles)

    def check_role(request: Request) -> CurrentUser:
        current_user: Optional[CurrentUser] = getattr(request.state, "user", None)

        if current_user is None:
            raise AppError(ErrorKind.AUTHENTICATION, "User not authenticated")

        if current_user.role not in allowed:
            raise AppError(ErrorKind.AUTHORIZATION, "Insufficient permissions")

        return current_user

    return check_role


ADMIN_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)
