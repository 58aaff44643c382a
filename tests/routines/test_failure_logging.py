import pytest
from loguru import logger

from wger_routines.routines.errors import RemoteError, ValidationError


@pytest.fixture
def error_log():
    messages = []
    logger.add(lambda message: messages.append(message.record["message"]), level="ERROR")
    return messages


@pytest.mark.asyncio
async def test_delete_slot_failure_is_logged(engine, store, error_log):
    store.fail("DELETE", "slot")

    with pytest.raises(RemoteError):
        await engine.delete_slot(3)

    assert error_log == ["Failed to delete slot 3"]


@pytest.mark.asyncio
async def test_add_day_failure_is_logged(engine, store, routine, error_log):
    store.fail("POST", "day")

    with pytest.raises(RemoteError):
        await engine.add_day(routine["id"], description="Upper")

    assert error_log == [f"Failed to add a day to routine {routine['id']}"]


@pytest.mark.asyncio
async def test_update_exercise_failure_names_completed_writes(engine, store, routine, error_log):
    added = await engine.add_exercise_to_routine(routine_id=routine["id"], exercise_id=4, sets=3, reps=8)
    store.fail("GET", "repetitions-config")

    with pytest.raises(RemoteError):
        await engine.update_exercise_in_routine(added.id, sets=4, reps=12)

    assert error_log == [f"Failed to update exercise {added.id} after ['sets (updated)']"]


@pytest.mark.asyncio
async def test_validation_errors_are_not_logged_as_failures(engine, error_log):
    with pytest.raises(ValidationError):
        await engine.delete_day(0)

    assert error_log == []
