"""Collaborators the routine engine depends on.

The engine only sees these protocols; ``WgerClient`` and ``WgerAuthManager``
are the production implementations and tests pass in-memory fakes.
"""

from typing import Any, Protocol


class ResourceClient(Protocol):
    """Authenticated access to the remote collections.

    Paths are collection-relative (``/day/``, ``/day/12/``). ``get`` on a
    collection returns a ``{"results": [...]}`` envelope.
    """

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any: ...

    async def post(self, path: str, body: dict[str, Any]) -> Any: ...

    async def patch(self, path: str, body: dict[str, Any]) -> Any: ...

    async def delete(self, path: str) -> None: ...


class AuthProvider(Protocol):
    def has_credentials(self) -> bool: ...

    async def get_token(self) -> str: ...
