"""
Business logic for users.

``UserService`` implements the four operations of the user resource.
Each method takes already validated input (pydantic models, parsed
query values, the path id), performs a single store call (two
concurrent reads for listing) and returns a response model.  Failures
are raised as ``ApiError`` subclasses carrying the HTTP status and
body, so the methods can be exercised without an HTTP layer.
"""

import asyncio
import logging
import math
from typing import Optional

from ..core.errors import (
    DuplicateEmailError,
    DuplicateKeyError,
    NotFoundError,
    NothingToUpdateError,
    OperationFailedError,
    ServerError,
    StoreError,
    StoreValidationError,
)
from ..core.store import DocumentStore, SearchFilter
from ..schemas.user import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MessageResponse,
    UserCreate,
    UserListResponse,
    UserRead,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class UserService:
    """User operations on top of a document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def list_users(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
    ) -> UserListResponse:
        """Return one page of users, optionally filtered by ``search``.

        Count and page queries run concurrently.  When ``page`` lies past
        the last page the reported page is clamped to ``totalPages`` but
        the data returned is that of the requested (empty) page.
        """
        search_filter = SearchFilter(text=(search or "").strip())
        skip = (page - 1) * limit

        try:
            total, documents = await asyncio.gather(
                self.store.count(search_filter),
                self.store.find(search_filter, skip, limit),
            )
        except StoreError:
            logger.exception("Failed to list users")
            raise ServerError("Internal server error while querying data") from None

        total_pages = math.ceil(total / limit)
        current_page = total_pages if page > total_pages and total_pages > 0 else page

        return UserListResponse(
            page=current_page,
            limit=limit,
            total=total,
            totalPages=total_pages,
            data=[UserRead(**document) for document in documents],
        )

    async def create_user(self, data: UserCreate) -> UserResponse:
        logger.info("Creating user %s", data.email)
        try:
            document = await self.store.insert_one(data.model_dump())
        except DuplicateKeyError as exc:
            logger.info("Rejected duplicate %s on create", exc.field)
            if exc.field == "email":
                raise DuplicateEmailError("Failed to create user.") from None
            raise OperationFailedError(
                str(exc), "Failed to create user due to a validation error."
            ) from None
        except StoreValidationError as exc:
            logger.warning("Create user rejected by store: %s", exc)
            raise OperationFailedError(
                str(exc), "Failed to create user due to a validation error."
            ) from None
        except StoreError:
            logger.exception("Failed to create user %s", data.email)
            raise ServerError() from None
        return UserResponse(message="User created successfully", data=UserRead(**document))

    async def update_user(self, user_id: str, data: Optional[UserUpdate]) -> UserResponse:
        """Apply a partial update.  Absent or null fields are left untouched."""
        changes = data.model_dump(exclude_none=True) if data is not None else {}
        if not changes:
            raise NothingToUpdateError()

        logger.info("Updating user %s (%s)", user_id, ", ".join(sorted(changes)))
        try:
            document = await self.store.find_by_id_and_update(user_id, changes)
        except DuplicateKeyError as exc:
            logger.info("Rejected duplicate %s on update of %s", exc.field, user_id)
            if exc.field == "email":
                raise DuplicateEmailError("Failed to update user.") from None
            raise OperationFailedError(str(exc)) from None
        except StoreValidationError as exc:
            logger.warning("Update of user %s rejected by store: %s", user_id, exc)
            raise OperationFailedError(str(exc)) from None
        except StoreError:
            logger.exception("Failed to update user %s", user_id)
            raise ServerError() from None

        if document is None:
            raise NotFoundError()
        return UserResponse(message="User updated successfully", data=UserRead(**document))

    async def delete_user(self, user_id: str) -> MessageResponse:
        try:
            document = await self.store.find_by_id_and_delete(user_id)
        except StoreError:
            logger.exception("Failed to delete user %s", user_id)
            raise ServerError() from None

        if document is None:
            raise NotFoundError()
        logger.info("Deleted user %s", user_id)
        return MessageResponse(message="User deleted successfully")
