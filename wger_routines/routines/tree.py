"""Reassemble a routine tree from the flat wger collections.

Routine -> Day[] -> Slot[] -> SlotEntry[] -> {sets, reps, weight}. Reads at
each level fan out concurrently with ``asyncio.gather``, so the number of
sequential round trips is bounded by the depth of the tree, not its size.
Every level is sorted by ``order`` once its reads resolve, which keeps the
result independent of server and network ordering.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from wger_routines.integrations.wger.schemas import (
    Day,
    DayNode,
    EntryNode,
    MetricConfig,
    Routine,
    RoutineTree,
    Slot,
    SlotEntry,
    SlotNode,
)
from wger_routines.routines.configs import MetricKind, fetch_metric_configs
from wger_routines.routines.ports import ResourceClient
from wger_routines.routines.resolver import DAY_PATH, expect, find_many

ROUTINE_PATH = "/routine/"
SLOT_PATH = "/slot/"
SLOT_ENTRY_PATH = "/slot-entry/"


def _by_order(items: list) -> list:
    # sorted() is stable: equal orders keep server order
    return sorted(items, key=lambda item: item.order)


def _first_value(configs: list[MetricConfig]):
    return configs[0].value if configs else None


class TreeAggregator:
    def __init__(self, client: ResourceClient, *, limit: int) -> None:
        self._client = client
        self._limit = limit

    async def build(self, routine_id: int) -> RoutineTree:
        path = f"{ROUTINE_PATH}{routine_id}/"
        routine = expect(Routine, await self._client.get(path), method="GET", path=path)

        days = await find_many(self._client, DAY_PATH, Day, parent_field="routine", parent_id=routine_id, limit=self._limit)
        day_nodes = await asyncio.gather(*(self._day_node(day) for day in _by_order(days)))

        tree = RoutineTree.model_validate({**routine.model_dump(), "days": list(day_nodes)})
        logger.debug(
            f"Built routine {routine_id} tree: {len(tree.days)} days, "
            f"{sum(len(d.slots) for d in tree.days)} slots"
        )
        return tree

    async def _day_node(self, day: Day) -> DayNode:
        slots = await find_many(self._client, SLOT_PATH, Slot, parent_field="day", parent_id=day.id, limit=self._limit)
        slot_nodes = await asyncio.gather(*(self._slot_node(slot) for slot in _by_order(slots)))
        return DayNode.model_validate({**day.model_dump(), "slots": list(slot_nodes)})

    async def _slot_node(self, slot: Slot) -> SlotNode:
        entries = await find_many(
            self._client, SLOT_ENTRY_PATH, SlotEntry, parent_field="slot", parent_id=slot.id, limit=self._limit
        )
        entry_nodes = await asyncio.gather(*(self._entry_node(entry) for entry in _by_order(entries)))
        return SlotNode.model_validate({**slot.model_dump(), "entries": list(entry_nodes)})

    async def _entry_node(self, entry: SlotEntry) -> EntryNode:
        sets, reps, weight = await asyncio.gather(
            *(
                fetch_metric_configs(self._client, entry.id, kind, limit=self._limit)
                for kind in (MetricKind.SETS, MetricKind.REPS, MetricKind.WEIGHT)
            )
        )
        return EntryNode.model_validate(
            {
                **entry.model_dump(),
                "sets": _first_value(sets),
                "reps": _first_value(reps),
                "weight": _first_value(weight),
            }
        )
