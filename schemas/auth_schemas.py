from datetime import datetime
from typing import Optional
from pydantic import field_validator

from models.users import Role
from schemas.common import CamelModel, Email, Name, Password, Username


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class UserResponse(CamelModel):
    """
    Safe user projection. There is deliberately no password field here.
    """
    id: str
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    is_active: bool
    is_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AuthResult(CamelModel):
    user: UserResponse
    tokens: TokenPair


class RegisterRequest(CamelModel):
    email: Email
    username: Username
    password: Password
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None


class LoginRequest(CamelModel):
    email: Email
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        if not value:
            raise ValueError('Password is required')
        return value


class RefreshTokenRequest(CamelModel):
    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('Refresh token is required')
        return value


class LogoutRequest(CamelModel):
    # Omitted => every session of the user is revoked
    refresh_token: Optional[str] = None
