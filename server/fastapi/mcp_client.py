"""
MCP server client

Two ways of reaching the environmental data aggregation ("MCP") server:
  - call_mcp_tool: what the chat tools use. Goes through the relay route so the
    upstream address stays server-side. One attempt, no retries.
  - mcp_server_request: what the relay, tool listing and health routes use to
    talk to the upstream server directly.
"""

import json
import logging
from typing import Any

import httpx

import config

logger = logging.getLogger(__name__)

MCP_HEADERS = {
    "Content-Type": "application/json",
    "ngrok-skip-browser-warning": "true",
}

MAX_ERROR_DETAIL_LENGTH = 200


class ToolCallError(Exception):
    """A tool call failed. The message is safe to show to users."""

    def __init__(self, message: str, *, tool_name: str | None = None, status_code: int | None = None):
        self.tool_name = tool_name
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response, or fall back to the status."""
    fallback = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback

    if not isinstance(body, dict):
        return fallback

    for key in ("error", "message", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value:
            details = body.get("details")
            if isinstance(details, str) and details and details != value:
                return f"{value} ({details[:MAX_ERROR_DETAIL_LENGTH]})"
            return value
    return fallback


async def call_mcp_tool(
    tool_name: str,
    params: dict[str, Any],
    *,
    relay_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Call one tool on the MCP server through the relay and return its JSON result.

    Raises ToolCallError on network failures, timeouts, non-2xx responses and
    response bodies that are not JSON.
    """
    url = relay_url or config.MCP_RELAY_URL
    logger.info("Calling MCP tool %s with params %s", tool_name, params)

    try:
        async with httpx.AsyncClient(
            timeout=timeout or config.TOOL_TIMEOUT_SECONDS,
            transport=transport,
        ) as client:
            response = await client.post(
                url,
                json={"tool_name": tool_name, "params": params},
                headers={"Content-Type": "application/json"},
            )
    except httpx.TimeoutException:
        logger.warning("MCP tool %s timed out", tool_name)
        raise ToolCallError(f"Request to {tool_name} timed out", tool_name=tool_name)
    except httpx.HTTPError as e:
        logger.warning("MCP tool %s transport error: %s", tool_name, e)
        raise ToolCallError(f"Could not reach MCP relay: {e}", tool_name=tool_name) from e

    if not response.is_success:
        message = _error_message(response)
        logger.warning("MCP tool %s failed with status %s: %s", tool_name, response.status_code, message)
        raise ToolCallError(message, tool_name=tool_name, status_code=response.status_code)

    try:
        result = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ToolCallError(f"Invalid JSON response from {tool_name}", tool_name=tool_name) from e

    logger.debug("MCP tool %s result: %s", tool_name, result)
    return result


async def mcp_server_request(
    method: str,
    path: str,
    *,
    json_body: Any = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """Send a request straight to the upstream MCP server.

    Transport errors propagate as httpx exceptions; status handling is left to
    the caller.
    """
    logger.info("Calling MCP server: %s %s%s", method, config.MCP_SERVER_URL, path)
    async with httpx.AsyncClient(
        base_url=config.MCP_SERVER_URL,
        timeout=config.TOOL_TIMEOUT_SECONDS,
        headers=MCP_HEADERS,
        transport=transport,
    ) as client:
        response = await client.request(method, path, json=json_body)
    logger.info("MCP server response status: %s", response.status_code)
    return response
