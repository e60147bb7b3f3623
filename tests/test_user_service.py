from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from user_service_api.app.core.errors import (
    DuplicateEmailError,
    DuplicateKeyError,
    NotFoundError,
    NothingToUpdateError,
    OperationFailedError,
    ServerError,
    StoreError,
    StoreValidationError,
)
from user_service_api.app.core.store import SearchFilter, SQLiteUserStore
from user_service_api.app.schemas.user import UserCreate, UserUpdate
from user_service_api.app.services.user_service import UserService

MISSING_ID = "0" * 24


def _user(**overrides: Any) -> UserCreate:
    values = {"name": "Ann", "age": 25, "email": "ann@x.com"}
    values.update(overrides)
    return UserCreate(**values)


class RecordingStore:
    """Store double that records calls and fails with a configured error."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: List[str] = []

    async def _call(self, name: str) -> Any:
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        return None

    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("insert_one")

    async def find(self, search: SearchFilter, skip: int, limit: int) -> List[Dict[str, Any]]:
        await self._call("find")
        return []

    async def count(self, search: SearchFilter) -> int:
        await self._call("count")
        return 0

    async def find_by_id_and_update(self, doc_id: str, changes: Dict[str, Any]) -> Any:
        return await self._call("find_by_id_and_update")

    async def find_by_id_and_delete(self, doc_id: str) -> Any:
        return await self._call("find_by_id_and_delete")


class ConcurrentReadStore(RecordingStore):
    """``count`` only completes once ``find`` has started."""

    def __init__(self) -> None:
        super().__init__()
        self.find_started = asyncio.Event()

    async def find(self, search: SearchFilter, skip: int, limit: int) -> List[Dict[str, Any]]:
        self.find_started.set()
        return []

    async def count(self, search: SearchFilter) -> int:
        await asyncio.wait_for(self.find_started.wait(), timeout=1)
        return 0


def test_create_stores_normalized_user(store: SQLiteUserStore) -> None:
    service = UserService(store)

    result = asyncio.run(service.create_user(_user(age=25.7, email="A@X.com")))

    assert result.message == "User created successfully"
    assert result.data.age == 25
    assert result.data.email == "a@x.com"
    assert result.data.address is None


def test_create_duplicate_email_leaves_collection_unchanged(store: SQLiteUserStore) -> None:
    service = UserService(store)
    asyncio.run(service.create_user(_user(email="a@x.com")))

    with pytest.raises(DuplicateEmailError) as exc_info:
        asyncio.run(service.create_user(_user(name="Anna", age=30, email=" A@X.COM ")))

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == {
        "message": "Failed to create user.",
        "error": "Email already exists.",
    }
    assert asyncio.run(store.count(SearchFilter())) == 1


def test_create_maps_store_validation_rejection() -> None:
    fake = RecordingStore(StoreValidationError("User validation failed: name: too short"))

    with pytest.raises(OperationFailedError) as exc_info:
        asyncio.run(UserService(fake).create_user(_user()))

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == {
        "message": "Failed to create user due to a validation error.",
        "error": "User validation failed: name: too short",
    }


def test_create_storage_fault_is_server_error() -> None:
    fake = RecordingStore(StoreError("unable to open database file"))

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(UserService(fake).create_user(_user()))

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == {"error": "Internal server error"}
    assert fake.calls == ["insert_one"]


def test_update_with_no_fields_does_not_contact_store() -> None:
    fake = RecordingStore()
    service = UserService(fake)

    for payload in (None, UserUpdate(), UserUpdate.model_validate({"unknown": 1, "name": None})):
        with pytest.raises(NothingToUpdateError) as exc_info:
            asyncio.run(service.update_user(MISSING_ID, payload))
        assert exc_info.value.body == {"message": "No fields provided to update."}

    assert fake.calls == []


def test_update_missing_user_is_not_found(store: SQLiteUserStore) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        asyncio.run(UserService(store).update_user(MISSING_ID, UserUpdate(age=4)))

    assert exc_info.value.status_code == 404
    assert exc_info.value.body == {"error": "User not found"}
    assert asyncio.run(store.count(SearchFilter())) == 0


def test_update_applies_partial_change(store: SQLiteUserStore) -> None:
    service = UserService(store)
    created = asyncio.run(service.create_user(_user(address="Hue"))).data

    result = asyncio.run(service.update_user(created.id, UserUpdate(email=" ANN.LEE@X.COM ")))

    assert result.message == "User updated successfully"
    assert result.data.email == "ann.lee@x.com"
    assert result.data.name == "Ann"
    assert result.data.address == "Hue"
    assert result.data.createdAt == created.createdAt


def test_update_to_existing_email_is_duplicate(store: SQLiteUserStore) -> None:
    service = UserService(store)
    asyncio.run(service.create_user(_user()))
    bob = asyncio.run(service.create_user(_user(name="Bob", age=30, email="bob@x.com"))).data

    with pytest.raises(DuplicateEmailError) as exc_info:
        asyncio.run(service.update_user(bob.id, UserUpdate(email="ANN@x.com")))

    assert exc_info.value.body["message"] == "Failed to update user."
    assert exc_info.value.body["error"] == "Email already exists."


def test_update_maps_other_duplicate_keys_to_operation_failure() -> None:
    fake = RecordingStore(DuplicateKeyError("id"))

    with pytest.raises(OperationFailedError) as exc_info:
        asyncio.run(UserService(fake).update_user(MISSING_ID, UserUpdate(age=4)))

    assert "error" in exc_info.value.body
    assert "message" not in exc_info.value.body


def test_update_storage_fault_is_server_error() -> None:
    fake = RecordingStore(StoreError("unable to open database file"))

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(UserService(fake).update_user(MISSING_ID, UserUpdate(age=4)))

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == {"error": "Internal server error"}


def test_list_reads_concurrently() -> None:
    async def run():
        return await UserService(ConcurrentReadStore()).list_users()

    result = asyncio.run(run())

    assert result.total == 0
    assert result.totalPages == 0
    assert result.page == 1


def test_list_store_failure_is_server_error() -> None:
    fake = RecordingStore(StoreError("disk I/O error"))

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(UserService(fake).list_users())

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == {"error": "Internal server error while querying data"}


def test_list_clamps_reported_page_without_requery(store: SQLiteUserStore, seed_users) -> None:
    seed_users(12)

    result = asyncio.run(UserService(store).list_users(page=9, limit=5))

    assert result.page == 3
    assert result.totalPages == 3
    assert result.total == 12
    assert result.data == []


def test_list_trims_search_text(store: SQLiteUserStore, seed_users) -> None:
    seed_users(12)

    result = asyncio.run(UserService(store).list_users(search="  user1 "))

    assert result.total == 2
    assert [user.name for user in result.data] == ["User 10", "User 11"]


def test_delete_store_failure_is_server_error() -> None:
    fake = RecordingStore(StoreError("database is locked"))

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(UserService(fake).delete_user(MISSING_ID))

    assert exc_info.value.body == {"error": "Internal server error"}


def test_delete_twice_second_is_not_found(store: SQLiteUserStore, seed_users) -> None:
    user = seed_users(2)[0]
    service = UserService(store)

    assert asyncio.run(service.delete_user(user["id"])).message == "User deleted successfully"
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete_user(user["id"]))
    assert asyncio.run(store.count(SearchFilter())) == 1
