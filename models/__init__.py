from models.users import User, Role
from models.refresh_tokens import RefreshToken

__all__ = ["User", "Role", "RefreshToken"]
