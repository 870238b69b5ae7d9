from typing import Any, Awaitable, TypeVar

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from snackbase.client import SnackBaseClient
from snackbase.mcp.errors import describe_error
from snackbase.mcp.tools.api import api_request as _api_request
from snackbase.mcp.tools.auth import (
    auth_status as _auth_status,
    login as _login,
    logout as _logout,
    whoami as _whoami,
)

T = TypeVar("T")


async def _run_tool(call: Awaitable[T]) -> T:
    """Await a tool body, turning any failure into an ``isError`` result."""
    try:
        return await call
    except Exception as e:
        raise ToolError(describe_error(e)) from e


def create_mcp_server(client: SnackBaseClient) -> FastMCP:
    mcp = FastMCP(
        name="snackbase",
        instructions=(
            "SnackBase is a backend-as-a-service. Use these tools to sign in, "
            "inspect the current session, and call any SnackBase REST endpoint "
            "under /api/v1. Authentication and token refresh are handled for you."
        ),
    )

    @mcp.tool()
    async def snackbase_request(
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> dict:
        """Call a SnackBase API endpoint, e.g. method='GET', path='/api/v1/collections'.
        Query parameters go in params; JSON payloads for POST/PUT/PATCH go in body."""
        return await _run_tool(_api_request(client, method=method, path=path, params=params, body=body))

    @mcp.tool()
    async def snackbase_login(email: str, password: str, account: str | None = None) -> dict:
        """Sign in with email and password. Account defaults to the configured one."""
        return await _run_tool(_login(client, email=email, password=password, account=account))

    @mcp.tool()
    async def snackbase_logout() -> dict:
        """Sign out and forget the stored session."""
        return await _run_tool(_logout(client))

    @mcp.tool()
    async def snackbase_whoami() -> dict:
        """Get the signed-in user and account."""
        return await _run_tool(_whoami(client))

    @mcp.tool()
    async def snackbase_auth_status() -> dict:
        """Report whether a session or API key is available, without calling the backend."""
        return await _run_tool(_auth_status(client))

    return mcp
