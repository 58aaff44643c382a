"""Typed views of wger payloads.

Entities keep any remote fields they do not declare (``extra="allow"``) so a
returned Day or SlotEntry carries everything the server sent. Decoding never
raises: ``decode`` hands back ``Ok`` or a ``DecodeError`` for the caller to
raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from wger_routines.routines.errors import DecodeError


class WgerEntity(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int = Field(gt=0)


class Routine(WgerEntity):
    name: str
    description: str | None = None
    start: date | None = None
    end: date | None = None


class Day(WgerEntity):
    routine: int
    order: int
    name: str | None = None
    description: str | None = None
    is_rest: bool = False


class Slot(WgerEntity):
    day: int
    order: int
    comment: str | None = None


class SlotEntry(WgerEntity):
    slot: int
    exercise: int
    order: int
    comment: str | None = None


class MetricConfig(WgerEntity):
    slot_entry: int
    iteration: int = 1


class SetsConfig(MetricConfig):
    value: int | float


class RepetitionsConfig(MetricConfig):
    value: int | float


class WeightConfig(MetricConfig):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def stringify_number(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


# Exercise catalogue (public, read-only)


class ExerciseCategory(WgerEntity):
    name: str


class Muscle(WgerEntity):
    name: str
    name_en: str | None = None
    is_front: bool | None = None

    @property
    def label(self) -> str:
        return self.name_en or self.name


class Equipment(WgerEntity):
    name: str


class ExerciseTranslation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    description: str | None = None
    language: int


class ExerciseInfo(WgerEntity):
    category: ExerciseCategory
    muscles: list[Muscle] = Field(default_factory=list)
    muscles_secondary: list[Muscle] = Field(default_factory=list)
    equipment: list[Equipment] = Field(default_factory=list)
    # Older servers call the translations "exercises"
    translations: list[ExerciseTranslation] = Field(
        default_factory=list,
        validation_alias=AliasChoices("translations", "exercises"),
    )

    def translation(self, language: int) -> ExerciseTranslation | None:
        """The translation in ``language``, else the first one available."""
        for translation in self.translations:
            if translation.language == language:
                return translation
        return self.translations[0] if self.translations else None


class ExerciseSummary(BaseModel):
    id: int
    name: str
    category: str
    muscles: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)


class ExerciseDetails(ExerciseSummary):
    description: str = ""
    secondary_muscles: list[str] = Field(default_factory=list)


# Read-time projection of a routine. Never sent back to the server.


class EntryNode(SlotEntry):
    sets: int | float | None = None
    reps: int | float | None = None
    weight: str | None = None


class SlotNode(Slot):
    entries: list[EntryNode] = Field(default_factory=list)


class DayNode(Day):
    slots: list[SlotNode] = Field(default_factory=list)


class RoutineTree(Routine):
    days: list[DayNode] = Field(default_factory=list)


class ExerciseAddition(SlotEntry):
    """Slot entry created by add-exercise, plus the ids of its configs."""

    sets_config_id: int = Field(serialization_alias="setsConfigId")
    reps_config_id: int = Field(serialization_alias="repsConfigId")
    weight_config_id: int | None = Field(default=None, serialization_alias="weightConfigId")


class ExerciseUpdate(BaseModel):
    success: bool = True
    updates: list[str] = Field(default_factory=list)


class DeletionResult(BaseModel):
    success: bool = True
    id: int


T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


def decode(model: type[T], payload: Any) -> Ok[T] | DecodeError:
    """Decode a single remote payload into ``model``."""
    try:
        return Ok(model.model_validate(payload))
    except PydanticValidationError as e:
        return DecodeError(
            f"Invalid {model.__name__} payload ({e.error_count()} validation error(s))",
            details=e.errors(include_url=False),
        )


def decode_list(model: type[T], payload: Any) -> Ok[list[T]] | DecodeError:
    """Decode a ``{"results": [...]}`` list envelope into a list of ``model``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        return DecodeError(f"Expected a list envelope of {model.__name__}, got {type(payload).__name__}")

    items: list[T] = []
    for index, raw in enumerate(payload["results"]):
        result = decode(model, raw)
        if isinstance(result, DecodeError):
            result.message = f"{result.message} at results[{index}]"
            result.args = (result.message,)
            return result
        items.append(result.value)
    return Ok(items)
