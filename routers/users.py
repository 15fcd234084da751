from typing import Literal, Optional
from fastapi import APIRouter, Depends, Path, Query, Request
from starlette import status

from core.exceptions import AppError, ErrorKind
from models.users import Role
from schemas.auth_schemas import UserResponse
from schemas.user_schemas import AdminUpdateUserRequest
from services.user_service import UserService
from utils.deps import ADMIN_ROLES, authenticate, authorize, db_dependency, user_dependency
from utils.response import no_content_response, paginated_response, success_response

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

ADMIN_ONLY_FIELDS = {"role", "is_active", "is_verified"}


router = APIRouter(
    prefix="/users",
    tags=["users"],
    # Every user route needs an authenticated caller
    dependencies=[Depends(authenticate)],
)


@router.get("", dependencies=[Depends(authorize(ADMIN_ROLES))])
def list_users(
    request: Request,
    db: db_dependency,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    search: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    users, total = UserService.list_users(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        role=role,
        is_active=is_active,
    )
    data = [UserResponse.model_validate(user) for user in users]
    return paginated_response(data, total, page, limit, "Users retrieved successfully")


@router.get("/{user_id}")
def get_user(
    request: Request,
    user: user_dependency,
    db: db_dependency,
    user_id: str = Path(pattern=UUID_PATTERN),
):
    if user.id != user_id and user.role not in ADMIN_ROLES:
        raise AppError(ErrorKind.AUTHORIZATION, "Insufficient permissions")

    model = UserService.get_user(db, user_id)
    return success_response(UserResponse.model_validate(model), "User retrieved successfully")


@router.patch("/{user_id}")
def update_user(
    request: Request,
    body: AdminUpdateUserRequest,
    user: user_dependency,
    db: db_dependency,
    user_id: str = Path(pattern=UUID_PATTERN),
):
    """
    Users may edit their own profile; admins may edit anyone and also change
    role, active and verified flags.
    """
    is_admin = user.role in ADMIN_ROLES

    if user.id != user_id and not is_admin:
        raise AppError(ErrorKind.AUTHORIZATION, "Insufficient permissions")

    if not is_admin and ADMIN_ONLY_FIELDS & body.model_fields_set:
        raise AppError(ErrorKind.AUTHORIZATION, "Insufficient permissions")

    model = UserService.update_user(db, user_id, body)
    return success_response(UserResponse.model_validate(model), "User updated successfully")


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authorize(ADMIN_ROLES))],
)
def delete_user(request: Request, db: db_dependency, user_id: str = Path(pattern=UUID_PATTERN)):
    UserService.deactivate_user(db, user_id)
    return no_content_response()


@router.delete(
    "/{user_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authorize([Role.SUPER_ADMIN]))],
)
def hard_delete_user(request: Request, db: db_dependency, user_id: str = Path(pattern=UUID_PATTERN)):
    UserService.hard_delete_user(db, user_id)
    return no_content_response()
