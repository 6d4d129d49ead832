"""
Shared plumbing for the environmental data tools.

Every tool follows the same shape: fill in missing parameters from the turn's
location, call one MCP tool through the relay, then render whatever fields
came back as a short markdown summary ending with the location and a
timestamp. Failures come back as a one-line message instead of an exception.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

import mcp_client
from mcp_client import ToolCallError
from models import Location, ToolInvocationResult

# (payload key, label, value template)
Field = tuple[str, str, str]

Renderer = Callable[[Any], list[str] | str]


def resolve_coordinates(
    location: Location,
    latitude: float | None,
    longitude: float | None,
) -> tuple[float, float]:
    """Use the model's coordinates if given, otherwise the turn's location."""
    lat = latitude if latitude is not None else location.latitude
    lon = longitude if longitude is not None else location.longitude
    return lat, lon


def date_range(days: int, end: datetime | None = None) -> tuple[str, str]:
    """ISO start/end dates covering the last `days` days."""
    end = end or datetime.now()
    start = end - timedelta(days=max(days, 1))
    return start.strftime("%Y-%m-%d"), end.strftime("%Y-%m-%d")


def field_lines(data: Any, fields: Iterable[Field]) -> list[str]:
    """Render the fields present in `data`, in the given order. Missing or null fields are skipped."""
    if not isinstance(data, dict):
        return []
    lines = []
    for key, label, template in fields:
        value = data.get(key)
        if value is None:
            continue
        lines.append(f"{label} {template.format(value)}")
    return lines


def location_footer(location: Location, latitude: float, longitude: float) -> list[str]:
    return [
        f"📍 **Location:** {location.name} ({latitude}, {longitude})",
        f"🕐 **Retrieved at:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
    ]


def failure_text(what: str, error: Exception | str) -> str:
    message = " ".join(str(error).split())
    return f"❌ Error getting {what}: {message}"


async def fetch_and_format(
    upstream: str,
    params: dict[str, Any],
    render: Renderer,
    *,
    location: Location,
    latitude: float,
    longitude: float,
    what: str,
    tool_name: str,
) -> ToolInvocationResult:
    """Call `upstream` and render the result.

    `render` returns either body lines (the footer gets appended) or a
    complete message string when the payload holds nothing usable.
    """
    try:
        payload = await mcp_client.call_mcp_tool(upstream, params)
    except ToolCallError as e:
        return ToolInvocationResult(tool_name=tool_name, upstream=upstream, error_message=failure_text(what, e))

    body = render(payload)
    if isinstance(body, str):
        text = body
    else:
        text = "\n".join([*body, "", *location_footer(location, latitude, longitude)])

    return ToolInvocationResult(tool_name=tool_name, upstream=upstream, raw_payload=payload, formatted_text=text)
