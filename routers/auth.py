from typing import Optional
from fastapi import APIRouter, Body, Request
from starlette import status

from core.config import settings
from middleware.rate_limiter import limiter
from schemas.auth_schemas import LoginRequest, LogoutRequest, RefreshTokenRequest, RegisterRequest
from utils.deps import auth_service_dependency, db_dependency, user_dependency
from utils.logger import get_logger
from utils.response import created_response, no_content_response, success_response

logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def register(request: Request, body: RegisterRequest, db: db_dependency, auth: auth_service_dependency):
    result = auth.register(db, body)
    return created_response(result, "User registered successfully")


@router.post("/login", status_code=status.HTTP_200_OK)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def login(request: Request, body: LoginRequest, db: db_dependency, auth: auth_service_dependency):
    result = auth.login(db, body.email, body.password)
    return success_response(result, "Login successful")


@router.post("/refresh", status_code=status.HTTP_200_OK)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def refresh_token(request: Request, body: RefreshTokenRequest, db: db_dependency, auth: auth_service_dependency):
    """
    Exchange a refresh token for a new pair. The presented token is revoked.
    """
    tokens = auth.refresh(db, body.refresh_token)
    return success_response(tokens, "Token refreshed successfully")


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    user: user_dependency,
    db: db_dependency,
    auth: auth_service_dependency,
    body: Optional[LogoutRequest] = Body(default=None),
):
    """
    Revoke the given refresh token, or every session of the user when the
    body carries none.
    """
    auth.logout(db, user.id, body.refresh_token if body else None)
    return no_content_response()


@router.get("/me", status_code=status.HTTP_200_OK)
def me(request: Request, user: user_dependency, db: db_dependency, auth: auth_service_dependency):
    current = auth.get_current_user(db, user.id)
    return success_response({"user": current}, "User retrieved successfully")
