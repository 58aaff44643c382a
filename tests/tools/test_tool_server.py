"""Tests for the MCP tool server endpoints.

The app is built around an engine backed by the in-memory store, so every
tool call exercises the real registry, validation and error mapping.
"""

import pytest
from fastapi.testclient import TestClient

from wger_routines.server.main import create_app
from wger_routines.tools.registry import TOOL_MAP, TOOLS

EXPECTED_TOOLS = {
    "create_workout",
    "get_user_routines",
    "get_routine_details",
    "add_day_to_routine",
    "update_day",
    "delete_day",
    "add_exercise_to_routine",
    "update_exercise_in_routine",
    "delete_slot",
    "diagnose",
    "list_categories",
    "list_muscles",
    "list_equipment",
    "search_exercises",
    "get_exercise_details",
}


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


def call(client, tool, arguments=None):
    response = client.post("/mcp/tools/call", json={"tool": tool, "arguments": arguments or {}})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.json() == {"status": "healthy", "server": "wger-routines-mcp"}


def test_lists_every_tool_with_camel_case_schema(client):
    tools = {tool["name"]: tool for tool in client.get("/mcp/tools").json()["tools"]}

    assert set(tools) == EXPECTED_TOOLS == set(TOOL_MAP)
    schema = tools["add_exercise_to_routine"]["inputSchema"]
    assert {"routineId", "exerciseId", "sets", "reps"} <= set(schema["required"])
    assert "dayName" in schema["properties"]
    assert len(TOOLS) == len(TOOL_MAP)


def test_add_exercise_round_trip(client, store, routine):
    added = call(
        client,
        "add_exercise_to_routine",
        {"routineId": routine["id"], "exerciseId": 12, "sets": 3, "reps": 10, "weight": 50, "dayName": "Leg Day"},
    )["result"]

    assert added["setsConfigId"] and added["repsConfigId"] and added["weightConfigId"]

    details = call(client, "get_routine_details", {"routineId": routine["id"]})["result"]
    [day] = details["days"]
    [slot] = day["slots"]
    [entry] = slot["entries"]
    assert day["name"] == "Leg Day"
    assert (entry["exercise"], entry["sets"], entry["reps"], entry["weight"]) == (12, 3, 10, "50")


def test_update_exercise_reports_labels(client, routine):
    added = call(
        client, "add_exercise_to_routine", {"routineId": routine["id"], "exerciseId": 4, "sets": 3, "reps": 8}
    )["result"]

    result = call(client, "update_exercise_in_routine", {"slotEntryId": added["id"], "reps": 12})["result"]

    assert result == {"success": True, "updates": ["reps (updated)"]}


def test_day_tools(client, store, routine):
    day = call(client, "add_day_to_routine", {"routineId": routine["id"], "description": "Upper"})["result"]
    updated = call(client, "update_day", {"dayId": day["id"], "isRest": True})["result"]
    deleted = call(client, "delete_day", {"dayId": day["id"]})["result"]

    assert day["order"] == 1
    assert updated["is_rest"] is True
    assert updated["name"] == "Upper"
    assert deleted == {"success": True, "id": day["id"]}
    assert store.rows["day"] == {}


def test_routine_tools(client):
    created = call(client, "create_workout", {"name": "Block A", "start": "2026-02-02", "end": "2026-04-27"})["result"]
    listed = call(client, "get_user_routines")["result"]

    assert created["start"] == "2026-02-02"
    assert [r["id"] for r in listed] == [created["id"]]


def test_invalid_arguments_map_to_invalid_input(client, store, routine):
    body = call(client, "add_exercise_to_routine", {"routineId": routine["id"], "exerciseId": 1, "sets": 0, "reps": 5})

    assert body["error"]["code"] == "INVALID_INPUT"
    assert "sets" in body["error"]["message"]
    assert store.calls == []


def test_missing_credentials_checked_before_arguments(client, auth, store):
    auth.credentials = False

    body = call(client, "delete_slot", {"slotId": "not-a-number"})

    assert body["error"]["code"] == "AUTHENTICATION_REQUIRED"
    assert store.calls == []


def test_remote_errors_are_reported(client, store):
    body = call(client, "get_routine_details", {"routineId": 99})

    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["message"].startswith("Not found:")


def test_unexpected_errors_become_internal_error(client, store, routine):
    store.fail("GET", "day", RuntimeError("boom"))

    body = call(client, "get_routine_details", {"routineId": routine["id"]})

    assert body["error"] == {"code": "INTERNAL_ERROR", "message": "Tool execution failed: boom"}


def test_diagnose_works_without_credentials(client, auth):
    auth.credentials = False

    result = call(client, "diagnose")["result"]

    assert result["has_credentials"] is False
    assert {"base_url", "auth_method", "token_ok", "api_reachable"} <= set(result)


def test_unknown_tool(client):
    body = call(client, "launch_rocket")

    assert body["error"]["code"] == "TOOL_NOT_FOUND"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"arguments": {}}, "Missing 'tool' field"),
        ({"tool": "diagnose", "arguments": [1, 2]}, "'arguments' must be an object"),
        ([1, 2, 3], "Request body must be an object"),
    ],
)
def test_malformed_requests(client, payload, message):
    body = client.post("/mcp/tools/call", json=payload).json()

    assert body["error"] == {"code": "INVALID_REQUEST", "message": message}


def test_invalid_json(client):
    response = client.post(
        "/mcp/tools/call", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json()["error"]["code"] == "INVALID_REQUEST"


def test_exercise_search_without_credentials(client, auth, store):
    auth.credentials = False
    store.seed(
        "exerciseinfo",
        category={"id": 10, "name": "Abs"},
        translations=[{"name": "Crunches", "language": 2, "description": ""}],
    )
    store.seed("exerciseinfo", category={"id": 9, "name": "Legs"}, translations=[{"name": "Squats", "language": 2}])

    body = call(client, "search_exercises", {"categoryId": 10})

    assert body["result"] == [{"id": 1, "name": "Crunches", "category": "Abs", "muscles": [], "equipment": []}]


def test_exercise_details_reports_not_found(client):
    body = call(client, "get_exercise_details", {"exerciseId": 31})

    assert body["error"]["code"] == "NOT_FOUND"
