"""
Groundwater and soil moisture tools

Backed by NASA GRACE (groundwater storage) and SMAP (soil moisture) products
on the MCP server.
"""

from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import date_range, fetch_and_format, field_lines, resolve_coordinates

DEFAULT_GROUNDWATER_MONTHS = 12
DEFAULT_SOIL_MOISTURE_DAYS = 7

GROUNDWATER_FIELDS = (
    ("groundwater_storage_anomaly_cm", "💧 **Storage Anomaly:**", "{} cm"),
    ("trend_cm_per_year", "📉 **Trend:**", "{} cm/year"),
    ("trend_direction", "🧭 **Direction:**", "{}"),
    ("latest_date", "📅 **Latest Observation:**", "{}"),
)

SOIL_MOISTURE_FIELDS = (
    ("surface_soil_moisture", "🌱 **Surface Soil Moisture:**", "{} m³/m³"),
    ("root_zone_soil_moisture", "🌾 **Root Zone Soil Moisture:**", "{} m³/m³"),
    ("moisture_status", "🔎 **Status:**", "{}"),
    ("date", "📅 **Observation Date:**", "{}"),
)


def groundwater_lines(data: Any) -> list[str]:
    return field_lines(data, GROUNDWATER_FIELDS)


def soil_moisture_lines(data: Any) -> list[str]:
    return field_lines(data, SOIL_MOISTURE_FIELDS)


@tool
async def get_groundwater_trend(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
    months: int = DEFAULT_GROUNDWATER_MONTHS,
) -> str:
    """Get the groundwater storage trend from NASA GRACE satellite data.

    Use for questions about groundwater levels, aquifer depletion or water tables.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
        months: How many months of history to analyse (default 12).
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)

    def render(data: Any) -> list[str] | str:
        lines = groundwater_lines(data)
        if not lines:
            return "❌ No groundwater data available from the API"
        return [f"💧 **Groundwater Trend for {location.name} (last {months} months):**", "", *lines]

    result = await fetch_and_format(
        "GRACEAPI",
        {"lat": lat, "lon": lon, "months": months},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="groundwater data",
        tool_name="get_groundwater_trend",
    )
    return result.text


@tool
async def get_soil_moisture(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
    days: int = DEFAULT_SOIL_MOISTURE_DAYS,
) -> str:
    """Get satellite soil moisture from NASA SMAP.

    Use for questions about soil wetness, irrigation needs or drought stress.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
        days: How many days to average over (default 7).
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)
    start_date, end_date = date_range(days)

    def render(data: Any) -> list[str] | str:
        lines = soil_moisture_lines(data)
        if not lines:
            return "❌ No soil moisture data available from the API"
        return [f"🌱 **Soil Moisture for {location.name}:**", "", *lines]

    result = await fetch_and_format(
        "SMAPAPI",
        {"latitude": lat, "longitude": lon, "start_date": start_date, "end_date": end_date},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="soil moisture data",
        tool_name="get_soil_moisture",
    )
    return result.text
