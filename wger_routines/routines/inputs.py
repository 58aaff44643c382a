"""Input constraints for routine operations.

Field names are snake_case; the camelCase aliases are the argument names the
assistant-facing tools accept. Both spellings validate.
"""

from __future__ import annotations

from datetime import date
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from wger_routines.routines.errors import ValidationError

DAY_NAME_MAX_LENGTH = 50
COMMENT_MAX_LENGTH = 100


class OperationInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateRoutineInput(OperationInput):
    name: str = Field(min_length=1, max_length=50, description="Name of the routine")
    description: str = Field(default="", max_length=1000, description="Optional description of the routine")
    start: date | None = Field(default=None, description="First day of the routine (defaults to today)")
    end: date | None = Field(default=None, description="Last day of the routine (defaults to start + 12 weeks)")

    @model_validator(mode="after")
    def check_dates(self) -> CreateRoutineInput:
        if self.start and self.end and self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class EmptyInput(OperationInput):
    pass


class RoutineIdInput(OperationInput):
    routine_id: PositiveInt = Field(description="ID of the routine")


class AddDayInput(OperationInput):
    routine_id: PositiveInt = Field(description="ID of the routine to add the day to")
    description: str | None = Field(default=None, max_length=1000, description="Description of the day")
    is_rest: bool = Field(default=False, description="Whether this is a rest day")


class UpdateDayInput(OperationInput):
    day_id: PositiveInt = Field(description="ID of the day to update")
    description: str | None = Field(default=None, max_length=1000, description="New description for the day")
    is_rest: bool | None = Field(default=None, description="Update rest day status")
    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=DAY_NAME_MAX_LENGTH,
        description="New name/label for the day",
    )


class DayIdInput(OperationInput):
    day_id: PositiveInt = Field(description="ID of the day")


class AddExerciseInput(OperationInput):
    routine_id: PositiveInt = Field(description="ID of the routine to add the exercise to")
    exercise_id: PositiveInt = Field(description="ID of the exercise to add")
    sets: int = Field(ge=1, le=10, description="Number of sets to perform (1-10)")
    reps: int = Field(ge=1, le=100, description="Number of repetitions per set (1-100)")
    weight: float | None = Field(default=None, ge=0, description="Optional weight in kilograms")
    day_name: str | None = Field(
        default=None,
        max_length=DAY_NAME_MAX_LENGTH,
        description='Name of the day (e.g. "Chest Day"). Reused if it exists, created otherwise. '
        'Empty means "Workout Day".',
    )
    comment: str | None = Field(
        default=None,
        max_length=COMMENT_MAX_LENGTH,
        description="Optional notes for this exercise",
    )


class UpdateExerciseInput(OperationInput):
    slot_entry_id: PositiveInt = Field(description="ID of the slot entry (exercise in routine) to update")
    sets: int | None = Field(default=None, ge=1, le=10, description="New number of sets")
    reps: int | None = Field(default=None, ge=1, le=100, description="New number of repetitions")
    weight: float | None = Field(default=None, ge=0, description="New weight in kilograms")


class SlotIdInput(OperationInput):
    slot_id: PositiveInt = Field(description="ID of the slot to delete")


class SearchExercisesInput(OperationInput):
    query: str | None = Field(default=None, max_length=100, description="Text to look for in exercise names")
    category_id: PositiveInt | None = Field(default=None, description="Only exercises in this category")
    muscle_id: PositiveInt | None = Field(default=None, description="Only exercises working this primary muscle")
    equipment_id: PositiveInt | None = Field(default=None, description="Only exercises using this equipment")
    limit: int = Field(default=20, ge=1, le=100, description="Maximum number of results (1-100)")


class ExerciseIdInput(OperationInput):
    exercise_id: PositiveInt = Field(description="ID of the exercise")


M = TypeVar("M", bound=BaseModel)


def validate_input(model: type[M], data: dict[str, Any]) -> M:
    """Validate ``data`` against ``model``, raising our ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(problems, details=e.errors(include_url=False, include_context=False)) from e
