"""
Document store for the user collection.

``DocumentStore`` is the narrow interface the service layer consumes:
insert one document, find and count documents matching a filter, and
find‑by‑id‑and‑update / find‑by‑id‑and‑delete.  Each call is atomic on
its own.  Failures surface as ``StoreError`` subclasses:
``DuplicateKeyError`` for uniqueness violations and
``StoreValidationError`` when the collection schema rejects a document.

``SQLiteUserStore`` implements the interface on top of ``core.db``.
Every call opens its own connection and runs in a worker thread, so
independent calls issued together (as List does) really overlap and
the event loop is never blocked.
"""

import asyncio
import itertools
import logging
import secrets
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, TypeVar

from pydantic import ValidationError

from ..schemas.user import UserCreate
from .db import get_cursor, get_database_path, init_db
from .errors import DuplicateKeyError, StoreError, StoreValidationError, describe_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_FIELDS: Tuple[str, ...] = tuple(UserCreate.model_fields)
SEARCHABLE_FIELDS: Tuple[str, ...] = ("name", "email", "address")

# Largest value SQLite accepts for LIMIT and OFFSET parameters.
SQLITE_MAX_INTEGER = 2**63 - 1

_COLUMNS = "id, name, age, email, address, created_at, updated_at"

_object_id_counter = itertools.count(secrets.randbelow(0xFFFFFF))
_object_id_random = secrets.token_bytes(5)


def generate_object_id() -> str:
    """Return a new 24‑hex‑character identifier.

    Layout: 4‑byte creation time, 5 random bytes fixed per process and a
    3‑byte counter, so identifiers created by one process never repeat.
    """
    timestamp = int(time.time()).to_bytes(4, "big")
    counter = (next(_object_id_counter) % 0x1000000).to_bytes(3, "big")
    return (timestamp + _object_id_random + counter).hex()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SearchFilter:
    """Case‑insensitive substring match on any of ``fields``.

    An empty ``text`` matches every document.
    """

    text: str = ""
    fields: Tuple[str, ...] = SEARCHABLE_FIELDS

    def to_sql(self) -> Tuple[str, List[Any]]:
        if not self.text:
            return "", []
        needle = self.text.casefold()
        clauses = [f"instr(casefold(COALESCE({field}, '')), ?) > 0" for field in self.fields]
        return "WHERE " + " OR ".join(clauses), [needle] * len(self.fields)


class DocumentStore(Protocol):
    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def find(self, search: SearchFilter, skip: int, limit: int) -> List[Dict[str, Any]]:
        ...

    async def count(self, search: SearchFilter) -> int:
        ...

    async def find_by_id_and_update(
        self, doc_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        ...

    async def find_by_id_and_delete(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...


def apply_user_schema(document: Dict[str, Any]) -> Dict[str, Any]:
    """Enforce the collection schema on a full user document.

    Validates through ``UserCreate``, so the same setters run as for
    requests (trim, lowercase, floor), and raises
    ``StoreValidationError`` naming every failing path.
    """
    fields = {key: document.get(key) for key in USER_FIELDS if document.get(key) is not None}
    try:
        user = UserCreate.model_validate(fields)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {describe_error(error)}"
            for error in exc.errors()
        ]
        raise StoreValidationError("User validation failed: " + ", ".join(problems)) from None
    return user.model_dump()


def _row_to_document(row: sqlite3.Row) -> Dict[str, Any]:
    # row_id is internal bookkeeping and never leaves the store.
    return {
        "id": row["id"],
        "name": row["name"],
        "age": row["age"],
        "email": row["email"],
        "address": row["address"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _translate_error(exc: sqlite3.Error) -> StoreError:
    message = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        if message.startswith("UNIQUE constraint failed:"):
            field = message.rsplit(".", 1)[-1].strip()
            return DuplicateKeyError(field)
        return StoreValidationError(message)
    return StoreError(message)


class SQLiteUserStore:
    """User collection stored in a SQLite table."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or get_database_path()

    def initialize(self) -> None:
        init_db(self.db_path)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            raise _translate_error(exc) from exc
        except OverflowError as exc:
            # Integer parameter beyond what SQLite can bind.
            raise StoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Blocking implementations, executed in worker threads
    # ------------------------------------------------------------------
    def _insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        values = apply_user_schema(document)
        now = _now()
        stored = {"id": generate_object_id(), **values, "createdAt": now, "updatedAt": now}
        with get_cursor(self.db_path) as cursor:
            cursor.execute(
                f"INSERT INTO users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    stored["id"],
                    stored["name"],
                    stored["age"],
                    stored["email"],
                    stored["address"],
                    stored["createdAt"],
                    stored["updatedAt"],
                ),
            )
        return stored

    def _find(self, search: SearchFilter, skip: int, limit: int) -> List[Dict[str, Any]]:
        if skip > SQLITE_MAX_INTEGER:
            # No collection can be that large; the page is necessarily empty.
            return []
        where, params = search.to_sql()
        with get_cursor(self.db_path) as cursor:
            rows = cursor.execute(
                f"SELECT {_COLUMNS} FROM users {where} ORDER BY row_id LIMIT ? OFFSET ?",
                (*params, limit, skip),
            ).fetchall()
        return [_row_to_document(row) for row in rows]

    def _count(self, search: SearchFilter) -> int:
        where, params = search.to_sql()
        with get_cursor(self.db_path) as cursor:
            row = cursor.execute(f"SELECT COUNT(*) AS count FROM users {where}", params).fetchone()
        return row["count"]

    def _find_by_id_and_update(
        self, doc_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        changes = {key: value for key, value in changes.items() if key in USER_FIELDS}
        with get_cursor(self.db_path) as cursor:
            # Take the write lock before reading so the merge is atomic.
            cursor.execute("BEGIN IMMEDIATE")
            row = cursor.execute(
                f"SELECT {_COLUMNS} FROM users WHERE id = ?", (doc_id,)
            ).fetchone()
            if row is None:
                return None
            current = _row_to_document(row)
            values = apply_user_schema({**current, **changes})
            updated = {**current, **values, "updatedAt": _now()}
            cursor.execute(
                "UPDATE users SET name = ?, age = ?, email = ?, address = ?, updated_at = ? "
                "WHERE id = ?",
                (
                    updated["name"],
                    updated["age"],
                    updated["email"],
                    updated["address"],
                    updated["updatedAt"],
                    doc_id,
                ),
            )
        return updated

    def _find_by_id_and_delete(self, doc_id: str) -> Optional[Dict[str, Any]]:
        with get_cursor(self.db_path) as cursor:
            cursor.execute("BEGIN IMMEDIATE")
            row = cursor.execute(
                f"SELECT {_COLUMNS} FROM users WHERE id = ?", (doc_id,)
            ).fetchone()
            if row is None:
                return None
            cursor.execute("DELETE FROM users WHERE id = ?", (doc_id,))
        return _row_to_document(row)

    # ------------------------------------------------------------------
    # DocumentStore interface
    # ------------------------------------------------------------------
    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(self._insert_one, document)

    async def find(self, search: SearchFilter, skip: int, limit: int) -> List[Dict[str, Any]]:
        return await self._run(self._find, search, skip, limit)

    async def count(self, search: SearchFilter) -> int:
        return await self._run(self._count, search)

    async def find_by_id_and_update(
        self, doc_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return await self._run(self._find_by_id_and_update, doc_id, changes)

    async def find_by_id_and_delete(self, doc_id: str) -> Optional[Dict[str, Any]]:
        return await self._run(self._find_by_id_and_delete, doc_id)
