from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import date_range, fetch_and_format, field_lines, resolve_coordinates

CURRENT_WEATHER_FIELDS = "temperature_2m,relative_humidity_2m,precipitation,wind_speed_10m,weather_code"

DEFAULT_PRECIPITATION_DAYS = 30

WEATHER_FIELDS = (
    ("temperature_2m", "🌡️ **Temperature:**", "{}°C"),
    ("relative_humidity_2m", "💧 **Humidity:**", "{}%"),
    ("precipitation", "🌧️ **Precipitation:**", "{} mm"),
    ("wind_speed_10m", "💨 **Wind Speed:**", "{} km/h"),
)

PRECIPITATION_FIELDS = (
    ("total_precipitation_mm", "🌧️ **Total Precipitation:**", "{} mm"),
    ("average_daily_mm", "📊 **Daily Average:**", "{} mm/day"),
    ("max_daily_mm", "⛈️ **Wettest Day:**", "{} mm"),
    ("rainy_days", "☔ **Rainy Days:**", "{}"),
    ("anomaly_percent", "📈 **Anomaly vs. Normal:**", "{}%"),
)


def get_weather_code_description(code: int) -> str:
    """Convert WMO weather code to human-readable description."""
    weather_codes = {
        0: "Clear sky",
        1: "Mainly clear",
        2: "Partly cloudy",
        3: "Overcast",
        45: "Foggy",
        48: "Depositing rime fog",
        51: "Light drizzle",
        53: "Moderate drizzle",
        55: "Dense drizzle",
        56: "Light freezing drizzle",
        57: "Dense freezing drizzle",
        61: "Slight rain",
        63: "Moderate rain",
        65: "Heavy rain",
        66: "Light freezing rain",
        67: "Heavy freezing rain",
        71: "Slight snow",
        73: "Moderate snow",
        75: "Heavy snow",
        77: "Snow grains",
        80: "Slight rain showers",
        81: "Moderate rain showers",
        82: "Violent rain showers",
        85: "Slight snow showers",
        86: "Heavy snow showers",
        95: "Thunderstorm",
        96: "Thunderstorm with slight hail",
        99: "Thunderstorm with heavy hail",
    }
    return weather_codes.get(code, "Unknown conditions")


def weather_lines(current: Any) -> list[str]:
    """Lines for a block of current weather values (OpenMeteo `current` shape)."""
    if not isinstance(current, dict):
        return []
    lines = []
    if current.get("weather_code") is not None:
        lines.append(f"☁️ **Conditions:** {get_weather_code_description(current['weather_code'])}")
    lines.extend(field_lines(current, WEATHER_FIELDS))
    return lines


def precipitation_lines(data: Any) -> list[str]:
    lines = field_lines(data, PRECIPITATION_FIELDS)
    if isinstance(data, dict) and data.get("start_date") and data.get("end_date"):
        lines.append(f"📅 **Period:** {data['start_date']} to {data['end_date']}")
    return lines


@tool
async def get_weather_data(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
) -> str:
    """Get current weather (temperature, humidity, precipitation, wind) from the OpenMeteo API.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)

    def render(data: Any) -> list[str] | str:
        lines = weather_lines(data.get("current") if isinstance(data, dict) else None)
        if not lines:
            return "❌ No weather data available from the API"
        return [f"🌤️ **Current Weather for {location.name}:**", "", *lines]

    result = await fetch_and_format(
        "OpenMeteoAPI",
        {"latitude": lat, "longitude": lon, "current": CURRENT_WEATHER_FIELDS},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="weather data",
        tool_name="get_weather_data",
    )
    return result.text


@tool
async def get_precipitation_history(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
    days: int = DEFAULT_PRECIPITATION_DAYS,
) -> str:
    """Get historical rainfall totals from CHIRPS satellite precipitation data.

    Use for questions about recent rainfall, drought or how wet a period has been.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
        days: How many days to look back (default 30).
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)
    start_date, end_date = date_range(days)

    def render(data: Any) -> list[str] | str:
        lines = precipitation_lines(data)
        if not lines:
            return "❌ No precipitation data available from the API"
        return [f"🌧️ **Precipitation History for {location.name} (last {days} days):**", "", *lines]

    result = await fetch_and_format(
        "CHIRPSAPI",
        {"lat": lat, "lon": lon, "start_date": start_date, "end_date": end_date},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="precipitation data",
        tool_name="get_precipitation_history",
    )
    return result.text
