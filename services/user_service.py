from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import AppError, ErrorKind, not_found
from models.users import Role, User
from schemas.user_schemas import AdminUpdateUserRequest, UpdateUserRequest
from utils.logger import get_logger

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "email": User.email,
    "username": User.username,
    "lastLoginAt": User.last_login_at,
}


class UserService:

    @staticmethod
    def list_users(
        db: Session,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        search: Optional[str] = None,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[User], int]:
        """
        Page through users.

        Returns:
            Tuple of (users on this page, total matching users)
        """
        query = db.query(User)

        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                User.email.ilike(pattern),
                User.username.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            ))

        if role is not None:
            query = query.filter(User.role == role)

        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        total = query.count()

        column = SORTABLE_FIELDS.get(sort_by, User.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()

        users = query.order_by(order).offset((page - 1) * limit).limit(limit).all()
        return users, total

    @staticmethod
    def get_user(db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            raise not_found("User")
        return user

    @staticmethod
    def update_user(db: Session, user_id: str, data: UpdateUserRequest | AdminUpdateUserRequest) -> User:
        """
        Apply the fields present in `data`. Email/username changes are
        re-checked for uniqueness.
        """
        user = UserService.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)

        email = changes.get("email")
        if email and email != user.email:
            if db.query(User).filter(User.email == email).first():
                raise AppError(ErrorKind.CONFLICT, "Email already in use")

        username = changes.get("username")
        if username and username != user.username:
            if db.query(User).filter(User.username == username).first():
                raise AppError(ErrorKind.CONFLICT, "Username already in use")

        for field, value in changes.items():
            if value is None and field in ("email", "username", "role", "is_active", "is_verified"):
                continue
            setattr(user, field, value)

        db.commit()
        db.refresh(user)

        logger.info(
            "User updated",
            extra={"user_id": user.id, "fields": sorted(changes)}
        )
        return user

    @staticmethod
    def deactivate_user(db: Session, user_id: str) -> None:
        """
        Soft delete: the row stays, login and token checks start failing.
        """
        user = UserService.get_user(db, user_id)
        user.is_active = False
        db.commit()

        logger.info("User deactivated", extra={"user_id": user_id})

    @staticmethod
    def hard_delete_user(db: Session, user_id: str) -> None:
        """
        Permanent removal; the user's refresh tokens are deleted with it.
        """
        user = UserService.get_user(db, user_id)
        db.delete(user)
        db.commit()

        logger.info("User permanently deleted", extra={"user_id": user_id})
