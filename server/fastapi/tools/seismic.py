from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import date_range, fetch_and_format, resolve_coordinates

DEFAULT_RADIUS_KM = 100
DEFAULT_DAYS = 30
DEFAULT_MIN_MAGNITUDE = 2.5
MAX_LISTED_EARTHQUAKES = 5


def earthquake_lines(data: Any) -> list[str]:
    if not isinstance(data, dict):
        return []
    quakes = [q for q in data.get("earthquakes") or [] if isinstance(q, dict)]
    count = data.get("count", len(quakes) if "earthquakes" in data else None)
    if count is None:
        return []

    lines = [f"🌍 **Earthquakes Found:** {count}"]
    if quakes:
        lines.append("")
    for quake in quakes[:MAX_LISTED_EARTHQUAKES]:
        parts = []
        if quake.get("magnitude") is not None:
            parts.append(f"M{quake['magnitude']}")
        if quake.get("place"):
            parts.append(quake["place"])
        if quake.get("depth_km") is not None:
            parts.append(f"depth {quake['depth_km']} km")
        if quake.get("time"):
            parts.append(str(quake["time"]))
        if parts:
            lines.append(f"  • {' | '.join(parts)}")
    if len(quakes) > MAX_LISTED_EARTHQUAKES:
        lines.append(f"  …and {len(quakes) - MAX_LISTED_EARTHQUAKES} more")
    return lines


@tool
async def search_earthquakes(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float = DEFAULT_RADIUS_KM,
    days: int = DEFAULT_DAYS,
    min_magnitude: float = DEFAULT_MIN_MAGNITUDE,
) -> str:
    """Search recent earthquakes near a location using the USGS earthquake catalog.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
        radius_km: Search radius in kilometres (default 100).
        days: How many days to look back (default 30).
        min_magnitude: Smallest magnitude to include (default 2.5).
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)
    start_date, end_date = date_range(days)

    def render(data: Any) -> list[str] | str:
        lines = earthquake_lines(data)
        if not lines:
            return "❌ No earthquake data available from the API"
        return [f"🌋 **Seismic Activity within {radius_km} km of {location.name} (last {days} days):**", "", *lines]

    result = await fetch_and_format(
        "USGSEarthquakeAPI",
        {
            "latitude": lat,
            "longitude": lon,
            "maxradiuskm": radius_km,
            "starttime": start_date,
            "endtime": end_date,
            "minmagnitude": min_magnitude,
        },
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="earthquake data",
        tool_name="search_earthquakes",
    )
    return result.text
