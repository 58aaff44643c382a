"""Find-or-create resolution over the remote collections.

Resolution rule: candidates are fetched filtered by their parent, re-filtered
locally (the list endpoints are not trusted to apply the filter), and the
first candidate in server order that matches wins. Nothing is mutated when a
match exists.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from wger_routines.integrations.wger.schemas import Day, decode, decode_list
from wger_routines.routines.errors import DecodeError
from wger_routines.routines.ordering import next_order
from wger_routines.routines.ports import ResourceClient

T = TypeVar("T", bound=BaseModel)

DAY_PATH = "/day/"
DEFAULT_DAY_TYPE = "custom"


def expect(model: type[T], payload: Any, *, method: str, path: str) -> T:
    """Decode ``payload`` or raise the DecodeError describing why it failed."""
    result = decode(model, payload)
    if isinstance(result, DecodeError):
        result.method, result.path = method, path
        raise result
    return result.value


async def find_many(
    client: ResourceClient,
    path: str,
    model: type[T],
    *,
    parent_field: str,
    parent_id: int,
    limit: int,
) -> list[T]:
    """Fetch every ``model`` under ``parent_id``, in server order."""
    payload = await client.get(path, params={parent_field: parent_id, "limit": limit})
    result = decode_list(model, payload)
    if isinstance(result, DecodeError):
        result.method, result.path = "GET", path
        raise result

    owned = [item for item in result.value if getattr(item, parent_field) == parent_id]
    if len(owned) != len(result.value):
        logger.debug(
            f"Dropped {len(result.value) - len(owned)} {model.__name__} rows not belonging to {parent_field}={parent_id}"
        )
    return owned


async def find_or_create(
    find: Callable[[], Awaitable[list[T]]],
    match: Callable[[T], bool],
    create: Callable[[list[T]], Awaitable[T]],
) -> tuple[T, bool]:
    """Return ``(entity, created)``: the first match, else whatever ``create`` builds.

    ``create`` receives every candidate so it can derive ordering from them.
    """
    candidates = await find()
    for candidate in candidates:
        if match(candidate):
            return candidate, False
    return await create(candidates), True


async def find_or_create_day(
    client: ResourceClient,
    routine_id: int,
    name: str,
    *,
    limit: int,
) -> tuple[Day, bool]:
    """Resolve a day of ``routine_id`` by exact name, appending one if absent.

    Name equality is the idempotency key: an existing day is returned as is,
    whatever its description or rest flag.
    """

    async def create(existing: list[Day]) -> Day:
        payload = await client.post(
            DAY_PATH,
            {
                "routine": routine_id,
                "type": DEFAULT_DAY_TYPE,
                "name": name,
                "is_rest": False,
                "order": next_order(existing),
            },
        )
        return expect(Day, payload, method="POST", path=DAY_PATH)

    day, created = await find_or_create(
        lambda: find_many(client, DAY_PATH, Day, parent_field="routine", parent_id=routine_id, limit=limit),
        lambda day: day.name == name,
        create,
    )
    logger.debug(f"{'Created' if created else 'Using existing'} day {day.id} ({name!r}) in routine {routine_id}")
    return day, created
