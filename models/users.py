import enum
from core.database import Base
from sqlalchemy import (Column, String, Boolean, DateTime, Enum)
from sqlalchemy.orm import relationship
from models.mixins import UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class User(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "users"

    #relationships
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    # Stored lowercased and trimmed
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50))
    last_name = Column(String(50))
    role = Column(Enum(Role, name="user_role"), default=Role.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Tracked only, login does not require it
    is_verified = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User id={self.id} username={self.username} role={self.role}>"
