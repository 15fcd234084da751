from typing import Optional

from models.users import Role
from schemas.common import CamelModel, Email, Name, Username


class UpdateUserRequest(CamelModel):
    """
    Profile fields any user may change on their own account.
    """
    email: Optional[Email] = None
    username: Optional[Username] = None
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None


class AdminUpdateUserRequest(UpdateUserRequest):
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None
