"""Upsert of per-exercise metric configs (sets, repetitions, weight).

wger stores each metric of a slot entry as its own iteration-indexed record in
a dedicated collection. This module maps one logical value onto that record:
the first config returned for the slot entry is patched, otherwise a new
iteration-1 config is created. Each metric is handled on its own; there is no
transaction spanning several of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from loguru import logger

from wger_routines.integrations.wger.schemas import MetricConfig, RepetitionsConfig, SetsConfig, WeightConfig
from wger_routines.routines.ports import ResourceClient
from wger_routines.routines.resolver import expect, find_many

# No progression support: every config lives on the first iteration
DEFAULT_ITERATION = 1


class MetricKind(str, Enum):
    SETS = "sets"
    REPS = "reps"
    WEIGHT = "weight"

    @property
    def path(self) -> str:
        return _COLLECTIONS[self][0]

    @property
    def model(self) -> type[MetricConfig]:
        return _COLLECTIONS[self][1]


_COLLECTIONS: dict[MetricKind, tuple[str, type[MetricConfig]]] = {
    MetricKind.SETS: ("/sets-config/", SetsConfig),
    MetricKind.REPS: ("/repetitions-config/", RepetitionsConfig),
    MetricKind.WEIGHT: ("/weight-config/", WeightConfig),
}


@dataclass(frozen=True, slots=True)
class UpsertOutcome:
    kind: MetricKind
    action: Literal["created", "updated"]
    config_id: int

    @property
    def label(self) -> str:
        return f"{self.kind.value} ({self.action})"


def format_weight(value: float) -> str:
    """Weights travel as decimal strings; whole numbers drop the ``.0``."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def wire_value(kind: MetricKind, value: float) -> int | float | str:
    if kind is MetricKind.WEIGHT:
        return format_weight(value)
    return value


async def fetch_metric_configs(
    client: ResourceClient,
    slot_entry_id: int,
    kind: MetricKind,
    *,
    limit: int,
) -> list[MetricConfig]:
    return await find_many(
        client,
        kind.path,
        kind.model,
        parent_field="slot_entry",
        parent_id=slot_entry_id,
        limit=limit,
    )


async def upsert_metric(
    client: ResourceClient,
    slot_entry_id: int,
    kind: MetricKind,
    value: float,
    *,
    limit: int,
) -> UpsertOutcome:
    """Write ``value`` as the ``kind`` config of ``slot_entry_id``.

    Uniqueness per slot entry is not enforced here: when several configs exist
    only the first one is updated and the rest are left untouched.
    """
    configs = await fetch_metric_configs(client, slot_entry_id, kind, limit=limit)
    value_out = wire_value(kind, value)

    if configs:
        if len(configs) > 1:
            logger.warning(
                f"Found {len(configs)} {kind.value} configs for slot entry {slot_entry_id}; "
                f"updating the first ({configs[0].id}) only"
            )
        path = f"{kind.path}{configs[0].id}/"
        payload = await client.patch(path, {"value": value_out})
        config = expect(kind.model, payload, method="PATCH", path=path)
        action: Literal["created", "updated"] = "updated"
    else:
        payload = await client.post(
            kind.path,
            {
                "slot_entry": slot_entry_id,
                "iteration": DEFAULT_ITERATION,
                "value": value_out,
            },
        )
        config = expect(kind.model, payload, method="POST", path=kind.path)
        action = "created"

    logger.debug(f"{kind.value} config {config.id} {action} for slot entry {slot_entry_id} (value={value_out!r})")
    return UpsertOutcome(kind=kind, action=action, config_id=config.id)
