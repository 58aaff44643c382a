"""MCP tool server for wger routine management.

Implements MCP-compliant tools over HTTP:
- list_categories / list_muscles / list_equipment
- search_exercises / get_exercise_details
- create_workout
- get_user_routines
- get_routine_details
- add_day_to_routine / update_day / delete_day
- add_exercise_to_routine / update_exercise_in_routine
- delete_slot
- diagnose
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from wger_routines.config.settings import settings
from wger_routines.core.logger import setup_logger
from wger_routines.integrations.wger.client import WgerClient
from wger_routines.routines.engine import RoutineEngine
from wger_routines.routines.errors import RoutineError, get_user_friendly_message
from wger_routines.tools.registry import TOOL_MAP, TOOLS


def create_error_response(error_code: str, error_message: str) -> JSONResponse:
    """Create MCP-compliant error response."""
    return JSONResponse(
        status_code=200,  # MCP uses 200 with error payload
        content={
            "error": {
                "code": error_code,
                "message": error_message,
            },
        },
    )


def build_engine() -> tuple[RoutineEngine, WgerClient]:
    client = WgerClient.from_settings(settings)
    return RoutineEngine(client, client.auth, list_limit=settings.list_limit), client


def create_app(engine: RoutineEngine | None = None) -> FastAPI:
    """Build the tool server.

    Without an explicit engine one is wired from settings and its HTTP client
    is closed on shutdown.
    """
    owned_client: WgerClient | None = None
    if engine is None:
        engine, owned_client = build_engine()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(f"wger routines server started with {len(TOOLS)} tools")
        yield
        if owned_client is not None:
            await owned_client.aclose()
        logger.info("wger routines server stopped")

    app = FastAPI(title="wger Routines MCP Server", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine

    @app.get("/mcp/tools")
    async def list_tools() -> dict[str, Any]:
        """List tool definitions with their input JSON schemas."""
        return {"tools": [tool.definition() for tool in TOOLS]}

    @app.post("/mcp/tools/call")
    async def call_tool(request: Request) -> JSONResponse:
        """Handle MCP tool call requests.

        Expected request body:
        {
            "tool": "tool_name",
            "arguments": {...}
        }

        Returns MCP-compliant response with result or error.
        """
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return create_error_response("INVALID_REQUEST", "Invalid JSON in request body")

        if not isinstance(body, dict):
            return create_error_response("INVALID_REQUEST", "Request body must be an object")

        tool_name = body.get("tool")
        arguments = body.get("arguments") or {}

        if not tool_name:
            return create_error_response("INVALID_REQUEST", "Missing 'tool' field")
        if not isinstance(arguments, dict):
            return create_error_response("INVALID_REQUEST", "'arguments' must be an object")

        tool = TOOL_MAP.get(tool_name)
        if tool is None:
            logger.error(f"Unknown tool: {tool_name}")
            return create_error_response(
                "TOOL_NOT_FOUND",
                f"Tool '{tool_name}' not found. Available tools: {list(TOOL_MAP)}",
            )

        logger.info(f"Handling call_tool request: {tool_name}")
        try:
            result = await tool.call(request.app.state.engine, arguments)
        except RoutineError as e:
            logger.error(f"Tool execution failed: {tool_name} - {e.code}: {e.message}")
            return create_error_response(e.code, get_user_friendly_message(e))
        except Exception as e:
            logger.opt(exception=e).error(f"Tool execution error: {tool_name}")
            return create_error_response("INTERNAL_ERROR", f"Tool execution failed: {e!s}")

        logger.info(f"Tool execution successful: {tool_name}")
        return JSONResponse(status_code=200, content={"result": result})

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "server": "wger-routines-mcp"}

    return app


def main() -> None:
    import uvicorn

    setup_logger(settings)
    # log_config=None keeps uvicorn from replacing the forwarding handlers
    uvicorn.run(create_app(), host=settings.server_host, port=settings.server_port, log_config=None)


if __name__ == "__main__":
    main()
