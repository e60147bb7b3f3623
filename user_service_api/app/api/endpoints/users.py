"""
User endpoints.

CRUD routes for the user resource: paginated/searchable listing,
creation, partial update and deletion.  Bodies, query values and the
path id are validated by FastAPI against the pydantic schemas; the
application's ``RequestValidationError`` handler reports every
violation in a single 400 response.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from user_service_api.app.schemas.user import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    OBJECT_ID_PATTERN,
    ErrorResponse,
    MessageResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from user_service_api.app.services.user_service import UserService


router = APIRouter()

_BAD_REQUEST = {status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}}
_NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}
_SERVER_ERROR = {status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}}


def get_user_service(request: Request) -> UserService:
    return UserService(request.app.state.store)


@router.get(
    "",
    response_model=UserListResponse,
    responses={**_BAD_REQUEST, **_SERVER_ERROR},
)
async def list_users(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number, starting at 1"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size"),
    search: Optional[str] = Query(None, description="Substring matched against name, email and address"),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    """Return a page of users.

    The search is case insensitive and matches any of name, email or
    address.  A page past the end reports the last page number with
    an empty ``data`` list.
    """
    return await service.list_users(page=page, limit=limit, search=search)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_BAD_REQUEST, **_SERVER_ERROR},
)
async def create_user(
    user_in: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Create a user.  ``email`` must not belong to another user."""
    return await service.create_user(user_in)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_SERVER_ERROR},
)
async def update_user(
    user_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="24 hex character user id"),
    user_in: Optional[UserUpdate] = None,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Update the supplied fields of a user; other fields are unchanged."""
    return await service.update_user(user_id, user_in)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_SERVER_ERROR},
)
async def delete_user(
    user_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="24 hex character user id"),
    service: UserService = Depends(get_user_service),
) -> MessageResponse:
    return await service.delete_user(user_id)
