import re
from typing import Annotated
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for request/response bodies: camelCase on the wire, snake_case in code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


def validate_password(value: str) -> str:
    """
    Password must be 8-72 characters (bcrypt limit) and contain:
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    if len(value) < 8:
        raise ValueError('Password must be at least 8 characters')

    if len(value) > 72:
        raise ValueError('Password must not exceed 72 characters')

    if not re.search(r'[A-Z]', value):
        raise ValueError('Password must contain at least one uppercase letter')

    if not re.search(r'[a-z]', value):
        raise ValueError('Password must contain at least one lowercase letter')

    if not re.search(r'\d', value):
        raise ValueError('Password must contain at least one number')

    return value


def validate_username(value: str) -> str:
    value = value.strip()

    if len(value) < 3:
        raise ValueError('Username must be at least 3 characters')

    if len(value) > 30:
        raise ValueError('Username must not exceed 30 characters')

    if not re.fullmatch(r'[A-Za-z0-9_]+', value):
        raise ValueError('Username can only contain letters, numbers, and underscores')

    return value.lower()


def validate_name(value: str) -> str:
    if not 1 <= len(value) <= 50:
        raise ValueError('Must be between 1 and 50 characters')
    return value


Email = Annotated[EmailStr, BeforeValidator(normalize_email)]
Password = Annotated[str, AfterValidator(validate_password)]
Username = Annotated[str, AfterValidator(validate_username)]
Name = Annotated[str, AfterValidator(validate_name)]
