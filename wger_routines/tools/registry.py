"""Assistant-facing tools for routine management.

Each tool validates its camelCase arguments against an input model, calls the
matching RoutineEngine operation and returns a JSON-ready result. Errors are
not translated here; the server turns them into MCP error payloads.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from wger_routines.config.settings import settings
from wger_routines.routines.engine import RoutineEngine
from wger_routines.routines.inputs import (
    AddDayInput,
    AddExerciseInput,
    CreateRoutineInput,
    DayIdInput,
    EmptyInput,
    ExerciseIdInput,
    RoutineIdInput,
    SearchExercisesInput,
    SlotIdInput,
    UpdateDayInput,
    UpdateExerciseInput,
    validate_input,
)

ToolHandler = Callable[[RoutineEngine, BaseModel], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    requires_auth: bool = True

    def definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_model.model_json_schema(by_alias=True),
        }

    async def call(self, engine: RoutineEngine, arguments: dict[str, Any]) -> Any:
        if self.requires_auth:
            engine.require_credentials(f"call {self.name}")
        params = validate_input(self.input_model, arguments)
        result = await self.handler(engine, params)
        return _to_json(result)


def _to_json(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, list):
        return [_to_json(item) for item in result]
    return result


async def _list_categories(engine: RoutineEngine, params: EmptyInput) -> Any:
    return await engine.list_categories()


async def _list_muscles(engine: RoutineEngine, params: EmptyInput) -> Any:
    return await engine.list_muscles()


async def _list_equipment(engine: RoutineEngine, params: EmptyInput) -> Any:
    return await engine.list_equipment()


async def _search_exercises(engine: RoutineEngine, params: SearchExercisesInput) -> Any:
    return await engine.search_exercises(**params.model_dump())


async def _get_exercise_details(engine: RoutineEngine, params: ExerciseIdInput) -> Any:
    return await engine.get_exercise_details(params.exercise_id)


async def _create_workout(engine: RoutineEngine, params: CreateRoutineInput) -> Any:
    return await engine.create_routine(params.name, params.description, params.start, params.end)


async def _get_user_routines(engine: RoutineEngine, params: EmptyInput) -> Any:
    return await engine.list_routines()


async def _get_routine_details(engine: RoutineEngine, params: RoutineIdInput) -> Any:
    return await engine.get_routine_details(params.routine_id)


async def _add_day_to_routine(engine: RoutineEngine, params: AddDayInput) -> Any:
    return await engine.add_day(params.routine_id, params.description, params.is_rest)


async def _update_day(engine: RoutineEngine, params: UpdateDayInput) -> Any:
    return await engine.update_day(params.day_id, params.description, params.is_rest, params.name)


async def _delete_day(engine: RoutineEngine, params: DayIdInput) -> Any:
    return await engine.delete_day(params.day_id)


async def _add_exercise_to_routine(engine: RoutineEngine, params: AddExerciseInput) -> Any:
    return await engine.add_exercise_to_routine(**params.model_dump())


async def _update_exercise_in_routine(engine: RoutineEngine, params: UpdateExerciseInput) -> Any:
    return await engine.update_exercise_in_routine(**params.model_dump())


async def _delete_slot(engine: RoutineEngine, params: SlotIdInput) -> Any:
    return await engine.delete_slot(params.slot_id)


async def _diagnose(engine: RoutineEngine, params: EmptyInput) -> Any:
    report = await engine.diagnose()
    return {"base_url": settings.wger_base_url, "auth_method": settings.auth_method, **report}


TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        "list_categories",
        "List exercise categories (e.g. Arms, Legs, Chest) with their IDs.",
        EmptyInput,
        _list_categories,
        requires_auth=False,
    ),
    ToolSpec(
        "list_muscles",
        "List muscles with their IDs, for filtering exercise searches.",
        EmptyInput,
        _list_muscles,
        requires_auth=False,
    ),
    ToolSpec(
        "list_equipment",
        "List equipment (e.g. Barbell, Dumbbell) with their IDs, for filtering exercise searches.",
        EmptyInput,
        _list_equipment,
        requires_auth=False,
    ),
    ToolSpec(
        "search_exercises",
        "Search the exercise database by name, category, muscle or equipment. Returns exercise IDs "
        "to use with add_exercise_to_routine.",
        SearchExercisesInput,
        _search_exercises,
        requires_auth=False,
    ),
    ToolSpec(
        "get_exercise_details",
        "Get the description, category, muscles and equipment of one exercise.",
        ExerciseIdInput,
        _get_exercise_details,
        requires_auth=False,
    ),
    ToolSpec(
        "create_workout",
        "Create a new, empty workout routine. Returns the routine with its ID.",
        CreateRoutineInput,
        _create_workout,
    ),
    ToolSpec(
        "get_user_routines",
        "List the authenticated user's workout routines.",
        EmptyInput,
        _get_user_routines,
    ),
    ToolSpec(
        "get_routine_details",
        "Fetch a routine with its days, slots and exercises (including sets, reps and weight), "
        "ordered as they are scheduled.",
        RoutineIdInput,
        _get_routine_details,
    ),
    ToolSpec(
        "add_day_to_routine",
        "Add a new day to the end of an existing workout routine.",
        AddDayInput,
        _add_day_to_routine,
    ),
    ToolSpec(
        "update_day",
        "Update the description, name or rest flag of a day. Omitted fields are left unchanged.",
        UpdateDayInput,
        _update_day,
    ),
    ToolSpec(
        "delete_day",
        "Remove a day from a routine.",
        DayIdInput,
        _delete_day,
    ),
    ToolSpec(
        "add_exercise_to_routine",
        "Add an exercise to a routine with sets, reps and optional weight. The day is looked up by "
        "name and created if missing; each call adds a new slot. Returns the created slot entry.",
        AddExerciseInput,
        _add_exercise_to_routine,
    ),
    ToolSpec(
        "update_exercise_in_routine",
        "Update sets, reps and/or weight for an exercise already in a routine.",
        UpdateExerciseInput,
        _update_exercise_in_routine,
    ),
    ToolSpec(
        "delete_slot",
        "Remove a slot (and the exercise in it) from a routine day.",
        SlotIdInput,
        _delete_slot,
    ),
    ToolSpec(
        "diagnose",
        "Check the wger connection: configured URL, credentials, token and API reachability.",
        EmptyInput,
        _diagnose,
        requires_auth=False,
    ),
)

TOOL_MAP: dict[str, ToolSpec] = {tool.name: tool for tool in TOOLS}
