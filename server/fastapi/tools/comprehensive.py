"""
Comprehensive environmental summary

Asks the MCP server for several datasets in one call and merges whichever
sections come back. Sections missing from the response are left out.
"""

from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import fetch_and_format, resolve_coordinates
from .hydrology import groundwater_lines, soil_moisture_lines
from .weather import precipitation_lines, weather_lines


def _weather_section(data: Any) -> list[str]:
    # Accepts either the OpenMeteo shape or a bare block of current values
    if isinstance(data, dict) and isinstance(data.get("current"), dict):
        data = data["current"]
    return weather_lines(data)


# (payload key, heading, renderer), in display order
SECTIONS = (
    ("weather", "🌤️ **Weather**", _weather_section),
    ("precipitation", "🌧️ **Precipitation**", precipitation_lines),
    ("groundwater", "💧 **Groundwater**", groundwater_lines),
    ("soil_moisture", "🌱 **Soil Moisture**", soil_moisture_lines),
)

INCLUDE = ",".join(key for key, _, _ in SECTIONS)


def comprehensive_lines(data: Any) -> list[str]:
    if not isinstance(data, dict):
        return []
    lines = []
    for key, heading, render in SECTIONS:
        section = render(data.get(key))
        if not section:
            continue
        if lines:
            lines.append("")
        lines.append(heading)
        lines.extend(section)
    return lines


@tool
async def get_comprehensive_environmental_data(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
) -> str:
    """Get a combined environmental overview: weather, precipitation, groundwater and soil moisture.

    Use when the user asks for a general picture of conditions at their location.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)

    def render(data: Any) -> list[str] | str:
        lines = comprehensive_lines(data)
        if not lines:
            return "❌ No environmental data available from the API"
        return [f"🌍 **Environmental Overview for {location.name}:**", "", *lines]

    result = await fetch_and_format(
        "ComprehensiveEnvironmentalAPI",
        {"latitude": lat, "longitude": lon, "include": INCLUDE},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="environmental data",
        tool_name="get_comprehensive_environmental_data",
    )
    return result.text
