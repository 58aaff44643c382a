"""Read-only access to the public wger exercise catalogue.

Categories, muscles and equipment are small reference collections. Exercises
are read from ``/exerciseinfo/``, which inlines category, muscles, equipment
and translations so a search needs a single request. Server-side filters are
re-applied locally, as for the routine collections.
"""

from __future__ import annotations

import re
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from wger_routines.integrations.wger.schemas import (
    Equipment,
    ExerciseCategory,
    ExerciseDetails,
    ExerciseInfo,
    ExerciseSummary,
    Muscle,
    decode_list,
)
from wger_routines.routines.errors import DecodeError
from wger_routines.routines.ports import ResourceClient
from wger_routines.routines.resolver import expect

T = TypeVar("T", bound=BaseModel)

CATEGORY_PATH = "/exercisecategory/"
MUSCLE_PATH = "/muscle/"
EQUIPMENT_PATH = "/equipment/"
EXERCISE_INFO_PATH = "/exerciseinfo/"

ENGLISH = 2

_TAG = re.compile(r"<[^>]+>")


def _plain_text(html: str | None) -> str:
    return " ".join(_TAG.sub(" ", html or "").split())


def summarize(info: ExerciseInfo) -> ExerciseSummary:
    translation = info.translation(ENGLISH)
    return ExerciseSummary(
        id=info.id,
        name=translation.name if translation else f"Exercise {info.id}",
        category=info.category.name,
        muscles=[muscle.label for muscle in info.muscles],
        equipment=[item.name for item in info.equipment],
    )


def describe(info: ExerciseInfo) -> ExerciseDetails:
    translation = info.translation(ENGLISH)
    return ExerciseDetails(
        **summarize(info).model_dump(),
        description=_plain_text(translation.description if translation else None),
        secondary_muscles=[muscle.label for muscle in info.muscles_secondary],
    )


def _matches_query(info: ExerciseInfo, query: str) -> bool:
    needle = query.casefold()
    return any(needle in translation.name.casefold() for translation in info.translations)


class ExerciseCatalog:
    def __init__(self, client: ResourceClient, *, limit: int) -> None:
        self._client = client
        self._limit = limit

    async def _list(self, path: str, model: type[T], params: dict[str, Any] | None = None) -> list[T]:
        payload = await self._client.get(path, params={**(params or {}), "limit": self._limit})
        result = decode_list(model, payload)
        if isinstance(result, DecodeError):
            result.method, result.path = "GET", path
            raise result
        return result.value

    async def categories(self) -> list[ExerciseCategory]:
        return sorted(await self._list(CATEGORY_PATH, ExerciseCategory), key=lambda item: item.id)

    async def muscles(self) -> list[Muscle]:
        return sorted(await self._list(MUSCLE_PATH, Muscle), key=lambda item: item.id)

    async def equipment(self) -> list[Equipment]:
        return sorted(await self._list(EQUIPMENT_PATH, Equipment), key=lambda item: item.id)

    async def search(
        self,
        *,
        query: str | None = None,
        category_id: int | None = None,
        muscle_id: int | None = None,
        equipment_id: int | None = None,
        max_results: int = 20,
    ) -> list[ExerciseSummary]:
        """Exercises matching every given filter, in server order.

        ``query`` is a case-insensitive substring of any translated name.
        Only the first page of ``/exerciseinfo/`` is searched.
        """
        params: dict[str, Any] = {}
        if category_id is not None:
            params["category"] = category_id
        if muscle_id is not None:
            params["muscles"] = muscle_id
        if equipment_id is not None:
            params["equipment"] = equipment_id

        infos = await self._list(EXERCISE_INFO_PATH, ExerciseInfo, params)
        matches = [
            info
            for info in infos
            if (category_id is None or info.category.id == category_id)
            and (muscle_id is None or any(m.id == muscle_id for m in info.muscles))
            and (equipment_id is None or any(e.id == equipment_id for e in info.equipment))
            and (not query or _matches_query(info, query))
        ]
        logger.debug(f"Exercise search matched {len(matches)} of {len(infos)}", params=params, query=query)
        return [summarize(info) for info in matches[:max_results]]

    async def details(self, exercise_id: int) -> ExerciseDetails:
        path = f"{EXERCISE_INFO_PATH}{exercise_id}/"
        info = expect(ExerciseInfo, await self._client.get(path), method="GET", path=path)
        return describe(info)
