from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from user_service_api.app.core.store import SQLiteUserStore
from user_service_api.app.main import create_app


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteUserStore:
    user_store = SQLiteUserStore(str(tmp_path / "users.sqlite3"))
    user_store.initialize()
    return user_store


@pytest.fixture()
def client(store: SQLiteUserStore) -> Iterator[TestClient]:
    app = create_app(store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def seed_users(store: SQLiteUserStore) -> Callable[[int], List[Dict[str, Any]]]:
    """Insert ``count`` numbered users straight into the store."""

    async def _insert(count: int) -> List[Dict[str, Any]]:
        created = []
        for index in range(count):
            created.append(
                await store.insert_one(
                    {
                        "name": f"User {index:02d}",
                        "age": 20 + index,
                        "email": f"user{index:02d}@example.com",
                        "address": f"{index} Main Street",
                    }
                )
            )
        return created

    def _seed_users(count: int) -> List[Dict[str, Any]]:
        return asyncio.run(_insert(count))

    return _seed_users
