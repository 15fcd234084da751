from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from services.token_service import TokenError, TokenService

_token_service = TokenService.from_settings(settings)


def get_user_id(request: Request):
    """
    Rate-limit key: the user id of a valid access token, else the client address.
    """
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        try:
            payload = _token_service.verify_access_token(authorization[len("Bearer "):])
            return f"user:{payload.sub}"
        except TokenError:
            pass  # fall back to the client address

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_user_id,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.ENV != "testing",
)
