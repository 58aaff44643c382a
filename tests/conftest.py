"""Shared fixtures for routine tests.

``store`` is an in-memory stand-in for the wger collections that speaks the
same path/params/envelope protocol as ``WgerClient``.
"""

import asyncio
import itertools
from collections import Counter
from typing import Any

import pytest
from loguru import logger

from wger_routines.routines.engine import RoutineEngine
from wger_routines.routines.errors import AuthenticationError, NotFoundError, RemoteError

PARENT_FIELDS = {
    "routine": None,
    "day": "routine",
    "slot": "day",
    "slot-entry": "slot",
    "sets-config": "slot_entry",
    "repetitions-config": "slot_entry",
    "weight-config": "slot_entry",
    "exercisecategory": None,
    "muscle": None,
    "equipment": None,
    "exerciseinfo": None,
}

DEFAULTS: dict[str, dict[str, Any]] = {
    "routine": {"description": ""},
    "day": {"description": "", "is_rest": False, "need_logs_to_advance": False},
    "slot": {"comment": ""},
    "slot-entry": {"comment": ""},
    "sets-config": {"iteration": 1, "operation": "r", "repeat": False},
    "repetitions-config": {"iteration": 1, "operation": "r", "repeat": False},
    "weight-config": {"iteration": 1, "operation": "r", "repeat": False},
    "exercisecategory": {},
    "muscle": {},
    "equipment": {},
    "exerciseinfo": {"muscles": [], "muscles_secondary": [], "equipment": [], "translations": []},
}

CONFIG_COLLECTIONS = ("sets-config", "repetitions-config", "weight-config")


def _matches(field: Any, value: Any) -> bool:
    """Filter semantics of the list endpoints, including nested objects by id."""
    if isinstance(field, dict):
        return field.get("id") == value
    if isinstance(field, list):
        return any(_matches(item, value) for item in field)
    return field == value


class FakeWgerStore:
    """Flat collections with server-assigned ids and cascading slot deletes."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[int, dict[str, Any]]] = {name: {} for name in PARENT_FIELDS}
        self._ids = {name: itertools.count(1) for name in PARENT_FIELDS}
        self.calls: list[tuple[str, str]] = []
        self.reverse_lists = False
        self.unfiltered: set[str] = set()
        self.failures: dict[tuple[str, str], Exception] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    # -- protocol --------------------------------------------------------- #

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        collection, row_id = self._enter("GET", path)
        await self._yield()
        if row_id is not None:
            return dict(self._row(collection, row_id))

        params = dict(params or {})
        limit = params.pop("limit", None)
        rows = list(self.rows[collection].values())
        if collection not in self.unfiltered:
            rows = [row for row in rows if all(_matches(row.get(key), value) for key, value in params.items())]
        if self.reverse_lists:
            rows.reverse()
        if limit is not None:
            rows = rows[:limit]
        return {"count": len(rows), "next": None, "previous": None, "results": [dict(row) for row in rows]}

    async def post(self, path: str, body: dict[str, Any]) -> Any:
        collection, _ = self._enter("POST", path)
        await self._yield()
        return dict(self._insert(collection, body))

    async def patch(self, path: str, body: dict[str, Any]) -> Any:
        collection, row_id = self._enter("PATCH", path)
        await self._yield()
        row = self._row(collection, row_id)
        row.update(body)
        return dict(row)

    async def delete(self, path: str) -> None:
        collection, row_id = self._enter("DELETE", path)
        await self._yield()
        self._row(collection, row_id)
        del self.rows[collection][row_id]
        if collection == "slot":
            for entry_id in [e["id"] for e in self.rows["slot-entry"].values() if e["slot"] == row_id]:
                del self.rows["slot-entry"][entry_id]
                for name in CONFIG_COLLECTIONS:
                    for config_id in [c["id"] for c in self.rows[name].values() if c["slot_entry"] == entry_id]:
                        del self.rows[name][config_id]

    # -- helpers ---------------------------------------------------------- #

    def seed(self, collection: str, **fields: Any) -> dict[str, Any]:
        """Insert a row without recording a call."""
        return dict(self._insert(collection, fields))

    def count(self, method: str, collection: str) -> int:
        return Counter(self.calls)[(method, collection)]

    def fail(self, method: str, collection: str, error: Exception | None = None) -> None:
        self.failures[(method, collection)] = error or RemoteError(
            f"{method} /{collection}/ failed", status_code=500, method=method, path=f"/{collection}/"
        )

    def _enter(self, method: str, path: str) -> tuple[str, int | None]:
        parts = path.strip("/").split("/")
        collection = parts[0]
        row_id = int(parts[1]) if len(parts) > 1 else None
        self.calls.append((method, collection))
        if (method, collection) in self.failures:
            raise self.failures[(method, collection)]
        return collection, row_id

    async def _yield(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1

    def _insert(self, collection: str, fields: dict[str, Any]) -> dict[str, Any]:
        row_id = next(self._ids[collection])
        row = {"id": row_id, **DEFAULTS[collection], **fields}
        self.rows[collection][row_id] = row
        return row

    def _row(self, collection: str, row_id: int | None) -> dict[str, Any]:
        row = self.rows[collection].get(row_id) if row_id is not None else None
        if row is None:
            raise NotFoundError(f"/{collection}/{row_id}/ not found", status_code=404, path=f"/{collection}/{row_id}/")
        return row


class FakeAuth:
    def __init__(self, credentials: bool = True) -> None:
        self.credentials = credentials
        self.token_requests = 0

    def has_credentials(self) -> bool:
        return self.credentials

    async def get_token(self) -> str:
        self.token_requests += 1
        if not self.credentials:
            raise AuthenticationError("Authentication required.")
        return "test-token"


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep test output readable; loguru logs to stderr by default."""
    logger.remove()
    logger.add(lambda _: None, level="DEBUG")
    yield
    logger.remove()


@pytest.fixture
def store() -> FakeWgerStore:
    return FakeWgerStore()


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def engine(store: FakeWgerStore, auth: FakeAuth) -> RoutineEngine:
    return RoutineEngine(store, auth, list_limit=100)


@pytest.fixture
def routine(store: FakeWgerStore) -> dict[str, Any]:
    return store.seed("routine", name="Strength Block", start="2026-01-05", end="2026-03-30")
