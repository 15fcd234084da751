from core.database import Base
from sqlalchemy import Column, Boolean, DateTime, String, ForeignKey
from sqlalchemy.orm import relationship
from models.mixins import UUIDPrimaryKeyMixin, CreatedAtMixin

class RefreshToken(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """
    One issued refresh token.

    A row is created on every register/login/refresh. The only update it ever
    receives is is_revoked = True (rotation or logout). A token can mint a new
    pair only while the row exists, is not revoked and expires_at is in the future.
    """
    __tablename__ = "refresh_tokens"

    #fk
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="refresh_tokens")

    token = Column(String(1024), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
