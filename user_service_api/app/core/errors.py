"""
Error taxonomy for the service.

Two families live here.  ``StoreError`` and its subclasses are raised
by the document store adapter and describe what went wrong at the
storage layer.  ``ApiError`` and its subclasses are raised by the
service layer; each one carries the HTTP status code and the JSON body
that ``main.create_app`` renders for the client.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional


class StoreError(Exception):
    """Generic storage fault (connectivity, unexpected driver error)."""


class DuplicateKeyError(StoreError):
    """A write violated a uniqueness constraint."""

    def __init__(self, field: str, value: Any = None) -> None:
        super().__init__(f"Duplicate value for unique field '{field}'")
        self.field = field
        self.value = value


class StoreValidationError(StoreError):
    """The store's schema rejected a document."""


class ApiError(Exception):
    """An error that maps directly onto an HTTP response."""

    status_code: int = 400

    def __init__(self, body: Dict[str, Any], status_code: Optional[int] = None) -> None:
        super().__init__(body.get("message") or body.get("error"))
        self.body = body
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(ApiError):
    def __init__(self, errors: List[Dict[str, str]]) -> None:
        super().__init__({"message": "Invalid input data", "errors": errors})
        self.errors = errors

    @classmethod
    def from_pydantic(cls, errors: Iterable[Mapping[str, Any]]) -> "InputValidationError":
        """Build from pydantic/FastAPI error dicts.

        ``loc`` looks like ``("body", "age")`` or ``("query", "page")``;
        a bare ``("body",)`` or a byte offset (malformed JSON) is
        reported against the body as a whole.
        """
        entries = []
        for error in errors:
            loc = tuple(error.get("loc") or ("body",))
            location = str(loc[0])
            field = loc[-1] if len(loc) > 1 else location
            if isinstance(field, int):
                field = location
            entries.append(
                {"field": str(field), "message": describe_error(error), "location": location}
            )
        return cls(entries)


def describe_error(error: Mapping[str, Any]) -> str:
    """Client‑facing message of one pydantic error.

    Messages raised by our own validators are returned without
    pydantic's ``"Value error, "`` prefix.
    """
    cause = (error.get("ctx") or {}).get("error")
    if error.get("type") == "value_error" and cause is not None:
        return str(cause)
    return error.get("msg", "Invalid value")


class NothingToUpdateError(ApiError):
    def __init__(self) -> None:
        super().__init__({"message": "No fields provided to update."})


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, error: str = "User not found") -> None:
        super().__init__({"error": error})


class DuplicateEmailError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__({"message": message, "error": "Email already exists."})


class OperationFailedError(ApiError):
    """A write was rejected for a reason other than a duplicate email."""

    def __init__(self, error: str, message: Optional[str] = None) -> None:
        body: Dict[str, Any] = {}
        if message:
            body["message"] = message
        body["error"] = error
        super().__init__(body)


class ServerError(ApiError):
    status_code = 500

    def __init__(self, error: str = "Internal server error") -> None:
        super().__init__({"error": error})
