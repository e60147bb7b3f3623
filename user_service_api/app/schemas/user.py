"""
Pydantic models for user data.

``UserCreate`` and ``UserUpdate`` validate and normalize request
bodies: names and addresses are trimmed, e‑mails trimmed and
lowercased, ages floored to an integer.  The store validates every
document it writes against ``UserCreate`` as well, so the same rules
hold no matter how a write reaches storage.  ``UserRead`` and the
response envelopes describe what the API returns; their field names
are the JSON keys clients see, hence the camelCase timestamps.
"""

import math
import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@([\w-]+\.)+[\w-]{2,}$")
OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 5
MAX_LIMIT = 50


class UserBase(BaseModel):
    name: str = Field(..., min_length=2, examples=["Ann Lee"])
    age: int = Field(..., ge=0, examples=[25])
    email: str = Field(..., examples=["ann@example.com"])
    address: Optional[str] = Field(None, examples=["12 Main Street"])

    @field_validator("name", "address", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("age", mode="before")
    @classmethod
    def _floor_age(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, bool):
            raise ValueError("Age must be a number >= 0")
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ValueError("Age must be a number >= 0") from None
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("Age must be a number >= 0")
            return math.floor(value)
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email")
        return value


class UserCreate(UserBase):
    """Body of a create request."""


class UserUpdate(UserBase):
    """Body of an update request.

    Every field is optional.  JSON ``null`` counts as absent, so
    ``model_dump(exclude_none=True)`` yields exactly the partial write.
    """

    name: Optional[str] = Field(None, min_length=2)
    age: Optional[int] = Field(None, ge=0)
    email: Optional[str] = None
    address: Optional[str] = None


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: str = Field(..., examples=["670f9a3c1a2b3c4d5e6f7a8b"])
    createdAt: datetime
    updatedAt: datetime

    model_config = {
        "from_attributes": True,
    }


class UserListResponse(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    data: List[UserRead]


class UserResponse(BaseModel):
    message: str
    data: UserRead


class MessageResponse(BaseModel):
    message: str


class FieldError(BaseModel):
    field: str
    message: str
    location: str


class ErrorResponse(BaseModel):
    """Shape of every non‑2xx response body."""

    message: Optional[str] = None
    error: Optional[str] = None
    errors: Optional[List[FieldError]] = None
