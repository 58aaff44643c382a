"""Routine composition engine.

Facade over the flat wger collections exposing the routine operations the
assistant tools call. Every routine operation checks credentials first,
validates its input second, and only then talks to the remote store. The
exercise catalogue is public, so its reads skip the credential check.

Multi-step mutations run sequentially (later steps need ids from earlier
ones) and are not compensated: if a step fails, whatever was already created
stays in place and the error propagates unchanged.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from loguru import logger

from wger_routines.integrations.wger.schemas import (
    Day,
    DeletionResult,
    Equipment,
    ExerciseAddition,
    ExerciseCategory,
    ExerciseDetails,
    ExerciseSummary,
    ExerciseUpdate,
    Muscle,
    Routine,
    RoutineTree,
    Slot,
    SlotEntry,
    decode_list,
)
from wger_routines.routines.catalog import ExerciseCatalog
from wger_routines.routines.configs import MetricKind, UpsertOutcome, upsert_metric
from wger_routines.routines.errors import AuthenticationError, DecodeError, RoutineError, get_user_friendly_message
from wger_routines.routines.inputs import (
    DAY_NAME_MAX_LENGTH,
    AddDayInput,
    AddExerciseInput,
    CreateRoutineInput,
    DayIdInput,
    ExerciseIdInput,
    RoutineIdInput,
    SearchExercisesInput,
    SlotIdInput,
    UpdateDayInput,
    UpdateExerciseInput,
    validate_input,
)
from wger_routines.routines.ordering import FIRST_ORDER, next_order
from wger_routines.routines.ports import AuthProvider, ResourceClient
from wger_routines.routines.resolver import DAY_PATH, DEFAULT_DAY_TYPE, expect, find_many, find_or_create_day
from wger_routines.routines.tree import ROUTINE_PATH, SLOT_ENTRY_PATH, SLOT_PATH, TreeAggregator

DEFAULT_DAY_NAME = "Workout Day"
DEFAULT_ROUTINE_WEEKS = 12


class RoutineEngine:
    def __init__(self, client: ResourceClient, auth: AuthProvider, *, list_limit: int = 100) -> None:
        self._client = client
        self._auth = auth
        self._limit = list_limit
        self._tree = TreeAggregator(client, limit=list_limit)
        self._catalog = ExerciseCatalog(client, limit=list_limit)

    def require_credentials(self, action: str) -> None:
        if not self._auth.has_credentials():
            raise AuthenticationError(f"Authentication required to {action}.")

    # ------------------------------------------------------------------ #
    # Routines
    # ------------------------------------------------------------------ #

    async def create_routine(
        self,
        name: str,
        description: str = "",
        start: date | None = None,
        end: date | None = None,
    ) -> Routine:
        self.require_credentials("create routines")
        params = validate_input(
            CreateRoutineInput,
            {"name": name, "description": description, "start": start, "end": end},
        )
        await self._auth.get_token()

        start_date = params.start or date.today()
        end_date = params.end or start_date + timedelta(weeks=DEFAULT_ROUTINE_WEEKS)
        try:
            payload = await self._client.post(
                ROUTINE_PATH,
                {
                    "name": params.name,
                    "description": params.description,
                    "start": start_date.isoformat(),
                    "end": end_date.isoformat(),
                },
            )
            routine = expect(Routine, payload, method="POST", path=ROUTINE_PATH)
        except RoutineError:
            logger.error(f"Failed to create routine {params.name!r}")
            raise
        logger.info(f"Created routine {routine.id} ({routine.name!r})")
        return routine

    async def list_routines(self) -> list[Routine]:
        self.require_credentials("list routines")
        await self._auth.get_token()

        try:
            payload = await self._client.get(ROUTINE_PATH, params={"limit": self._limit})
        except RoutineError:
            logger.error("Failed to list routines")
            raise
        result = decode_list(Routine, payload)
        if isinstance(result, DecodeError):
            result.method, result.path = "GET", ROUTINE_PATH
            logger.error(f"Failed to list routines: {result.message}")
            raise result
        routines = sorted(result.value, key=lambda routine: routine.id)
        logger.info(f"Listed {len(routines)} routines")
        return routines

    async def get_routine_details(self, routine_id: int) -> RoutineTree:
        self.require_credentials("view routine details")
        params = validate_input(RoutineIdInput, {"routine_id": routine_id})
        await self._auth.get_token()

        try:
            tree = await self._tree.build(params.routine_id)
        except RoutineError:
            logger.error(f"Failed to get details of routine {params.routine_id}")
            raise
        logger.info(f"Fetched details of routine {tree.id}")
        return tree

    # ------------------------------------------------------------------ #
    # Days
    # ------------------------------------------------------------------ #

    async def add_day(self, routine_id: int, description: str | None = None, is_rest: bool = False) -> Day:
        """Append a day to the end of a routine.

        The day name is the first 50 characters of the description, or
        ``Day <n>`` when no description is given.
        """
        self.require_credentials("add days")
        params = validate_input(
            AddDayInput,
            {"routine_id": routine_id, "description": description, "is_rest": is_rest},
        )
        await self._auth.get_token()

        try:
            existing = await find_many(
                self._client, DAY_PATH, Day, parent_field="routine", parent_id=params.routine_id, limit=self._limit
            )
            order = next_order(existing)
            body: dict[str, Any] = {
                "routine": params.routine_id,
                "type": DEFAULT_DAY_TYPE,
                "name": (params.description or "")[:DAY_NAME_MAX_LENGTH] or f"Day {order}",
                "is_rest": params.is_rest,
                "order": order,
            }
            if params.description is not None:
                body["description"] = params.description

            day = expect(Day, await self._client.post(DAY_PATH, body), method="POST", path=DAY_PATH)
        except RoutineError:
            logger.error(f"Failed to add a day to routine {params.routine_id}")
            raise
        logger.info(f"Added day {day.id} to routine {params.routine_id} at order {order}")
        return day

    async def update_day(
        self,
        day_id: int,
        description: str | None = None,
        is_rest: bool | None = None,
        name: str | None = None,
    ) -> Day:
        """Partially update a day. Fields left as None are not sent."""
        self.require_credentials("update days")
        params = validate_input(
            UpdateDayInput,
            {"day_id": day_id, "description": description, "is_rest": is_rest, "name": name},
        )
        await self._auth.get_token()

        changes = params.model_dump(include={"description", "is_rest", "name"}, exclude_none=True)
        path = f"{DAY_PATH}{params.day_id}/"
        try:
            day = expect(Day, await self._client.patch(path, changes), method="PATCH", path=path)
        except RoutineError:
            logger.error(f"Failed to update day {params.day_id}")
            raise
        logger.info(f"Updated day {day.id}", fields=sorted(changes))
        return day

    async def delete_day(self, day_id: int) -> DeletionResult:
        """Delete a day. Its slots are not cleaned up here."""
        self.require_credentials("delete days")
        params = validate_input(DayIdInput, {"day_id": day_id})
        await self._auth.get_token()

        try:
            await self._client.delete(f"{DAY_PATH}{params.day_id}/")
        except RoutineError:
            logger.error(f"Failed to delete day {params.day_id}")
            raise
        logger.info(f"Deleted day {params.day_id}")
        return DeletionResult(id=params.day_id)

    # ------------------------------------------------------------------ #
    # Exercises
    # ------------------------------------------------------------------ #

    async def add_exercise_to_routine(
        self,
        routine_id: int,
        exercise_id: int,
        sets: int,
        reps: int,
        weight: float | None = None,
        day_name: str | None = None,
        comment: str | None = None,
    ) -> ExerciseAddition:
        """Place an exercise on a routine day with its sets, reps and weight.

        Steps: resolve the day by name (creating it if needed), create a new
        slot, link the exercise in a new slot entry, then write sets, reps and
        optionally weight. Existing slots are never reused.
        """
        self.require_credentials("add exercises")
        params = validate_input(
            AddExerciseInput,
            {
                "routine_id": routine_id,
                "exercise_id": exercise_id,
                "sets": sets,
                "reps": reps,
                "weight": weight,
                "day_name": day_name,
                "comment": comment,
            },
        )
        await self._auth.get_token()

        logger.debug(
            f"Adding exercise {params.exercise_id} to routine {params.routine_id}",
            sets=params.sets,
            reps=params.reps,
            weight=params.weight,
        )
        try:
            day, _ = await find_or_create_day(
                self._client,
                params.routine_id,
                params.day_name or DEFAULT_DAY_NAME,
                limit=self._limit,
            )

            slot_payload = await self._client.post(SLOT_PATH, {"day": day.id, "order": FIRST_ORDER})
            slot = expect(Slot, slot_payload, method="POST", path=SLOT_PATH)
            logger.debug(f"Created slot {slot.id} in day {day.id}")

            entry_payload = await self._client.post(
                SLOT_ENTRY_PATH,
                {
                    "slot": slot.id,
                    "exercise": params.exercise_id,
                    "order": FIRST_ORDER,
                    "comment": params.comment or "",
                },
            )
            entry = expect(SlotEntry, entry_payload, method="POST", path=SLOT_ENTRY_PATH)
            logger.debug(f"Created slot entry {entry.id} in slot {slot.id}")

            sets_outcome = await upsert_metric(self._client, entry.id, MetricKind.SETS, params.sets, limit=self._limit)
            reps_outcome = await upsert_metric(self._client, entry.id, MetricKind.REPS, params.reps, limit=self._limit)
            weight_outcome: UpsertOutcome | None = None
            if params.weight is not None:
                weight_outcome = await upsert_metric(
                    self._client, entry.id, MetricKind.WEIGHT, params.weight, limit=self._limit
                )
        except RoutineError:
            logger.error(f"Failed to add exercise {params.exercise_id} to routine {params.routine_id}")
            raise

        logger.info(
            f"Added exercise {params.exercise_id} to routine {params.routine_id}",
            slot_entry_id=entry.id,
            day_id=day.id,
        )
        return ExerciseAddition.model_validate(
            {
                **entry.model_dump(),
                "sets_config_id": sets_outcome.config_id,
                "reps_config_id": reps_outcome.config_id,
                "weight_config_id": weight_outcome.config_id if weight_outcome else None,
            }
        )

    async def update_exercise_in_routine(
        self,
        slot_entry_id: int,
        sets: int | None = None,
        reps: int | None = None,
        weight: float | None = None,
    ) -> ExerciseUpdate:
        """Upsert each supplied metric of a slot entry, in sets/reps/weight order.

        Metrics are written one by one; a failure part way leaves the earlier
        metrics written.
        """
        self.require_credentials("update exercises")
        params = validate_input(
            UpdateExerciseInput,
            {"slot_entry_id": slot_entry_id, "sets": sets, "reps": reps, "weight": weight},
        )
        await self._auth.get_token()

        requested = (
            (MetricKind.SETS, params.sets),
            (MetricKind.REPS, params.reps),
            (MetricKind.WEIGHT, params.weight),
        )
        updates: list[str] = []
        try:
            for kind, value in requested:
                if value is None:
                    continue
                outcome = await upsert_metric(self._client, params.slot_entry_id, kind, value, limit=self._limit)
                updates.append(outcome.label)
        except RoutineError:
            logger.error(f"Failed to update exercise {params.slot_entry_id} after {updates or 'no changes'}")
            raise

        logger.info(f"Updated exercise {params.slot_entry_id}: {', '.join(updates) or 'nothing to change'}")
        return ExerciseUpdate(updates=updates)

    async def delete_slot(self, slot_id: int) -> DeletionResult:
        """Delete a slot; the remote store removes its slot entries with it."""
        self.require_credentials("delete slots")
        params = validate_input(SlotIdInput, {"slot_id": slot_id})
        await self._auth.get_token()

        try:
            await self._client.delete(f"{SLOT_PATH}{params.slot_id}/")
        except RoutineError:
            logger.error(f"Failed to delete slot {params.slot_id}")
            raise
        logger.info(f"Deleted slot {params.slot_id}")
        return DeletionResult(id=params.slot_id)

    # ------------------------------------------------------------------ #
    # Exercise catalogue
    # ------------------------------------------------------------------ #

    async def list_categories(self) -> list[ExerciseCategory]:
        try:
            categories = await self._catalog.categories()
        except RoutineError:
            logger.error("Failed to list exercise categories")
            raise
        logger.info(f"Listed {len(categories)} exercise categories")
        return categories

    async def list_muscles(self) -> list[Muscle]:
        try:
            muscles = await self._catalog.muscles()
        except RoutineError:
            logger.error("Failed to list muscles")
            raise
        logger.info(f"Listed {len(muscles)} muscles")
        return muscles

    async def list_equipment(self) -> list[Equipment]:
        try:
            equipment = await self._catalog.equipment()
        except RoutineError:
            logger.error("Failed to list equipment")
            raise
        logger.info(f"Listed {len(equipment)} equipment items")
        return equipment

    async def search_exercises(
        self,
        query: str | None = None,
        category_id: int | None = None,
        muscle_id: int | None = None,
        equipment_id: int | None = None,
        limit: int = 20,
    ) -> list[ExerciseSummary]:
        """Find exercises by name and/or category, muscle and equipment ids.

        The returned ids are what ``add_exercise_to_routine`` expects.
        """
        params = validate_input(
            SearchExercisesInput,
            {
                "query": query,
                "category_id": category_id,
                "muscle_id": muscle_id,
                "equipment_id": equipment_id,
                "limit": limit,
            },
        )
        try:
            results = await self._catalog.search(
                query=params.query,
                category_id=params.category_id,
                muscle_id=params.muscle_id,
                equipment_id=params.equipment_id,
                max_results=params.limit,
            )
        except RoutineError:
            logger.error(f"Failed to search exercises (query={params.query!r})")
            raise
        logger.info(f"Exercise search returned {len(results)} results")
        return results

    async def get_exercise_details(self, exercise_id: int) -> ExerciseDetails:
        params = validate_input(ExerciseIdInput, {"exercise_id": exercise_id})
        try:
            details = await self._catalog.details(params.exercise_id)
        except RoutineError:
            logger.error(f"Failed to get details of exercise {params.exercise_id}")
            raise
        logger.info(f"Fetched details of exercise {details.id} ({details.name!r})")
        return details

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    async def diagnose(self) -> dict[str, Any]:
        """Check credentials and connectivity without raising."""
        report: dict[str, Any] = {
            "has_credentials": self._auth.has_credentials(),
            "token_ok": False,
            "api_reachable": False,
        }
        if not report["has_credentials"]:
            report["error"] = get_user_friendly_message(AuthenticationError("No credentials configured."))
            return report

        try:
            await self._auth.get_token()
            report["token_ok"] = True
            await self._client.get(ROUTINE_PATH, params={"limit": 1})
            report["api_reachable"] = True
        except RoutineError as e:
            logger.warning(f"Diagnosis failed: {e.message}")
            report["error"] = get_user_friendly_message(e)
        return report
