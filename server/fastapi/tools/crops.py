"""
Agricultural tools

Crop producer prices come from FAOSTAT and work for any country. Crop
identification uses the USDA CropScape cropland layer, which only covers the
contiguous United States, so other locations are turned away before any
upstream call.
"""

from datetime import datetime
from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import fetch_and_format, field_lines, resolve_coordinates

DEFAULT_PRICE_YEARS = 5

# Bounding box of the CropScape coverage (contiguous US)
CROPSCAPE_LAT_RANGE = (24.5, 49.5)
CROPSCAPE_LON_RANGE = (-125.0, -66.9)

PRICE_SUMMARY_FIELDS = (
    ("latest_price", "💰 **Latest Price:**", "{}"),
    ("average_price", "📊 **Average Price:**", "{}"),
)

CHANGE_FIELDS = (("change_percent", "📈 **Change over Period:**", "{}%"),)

CROP_FIELDS = (
    ("crop_name", "🌾 **Crop:**", "{}"),
    ("crop_code", "🏷️ **CDL Code:**", "{}"),
    ("year", "📅 **Year:**", "{}"),
    ("confidence", "🎯 **Confidence:**", "{}%"),
)


def in_cropscape_coverage(latitude: float, longitude: float) -> bool:
    return (
        CROPSCAPE_LAT_RANGE[0] <= latitude <= CROPSCAPE_LAT_RANGE[1]
        and CROPSCAPE_LON_RANGE[0] <= longitude <= CROPSCAPE_LON_RANGE[1]
    )


def price_lines(data: Any) -> list[str]:
    if not isinstance(data, dict):
        return []
    unit = data.get("unit")
    suffix = f" {unit}" if unit else ""

    lines = []
    for entry in data.get("prices") or []:
        if not isinstance(entry, dict) or entry.get("year") is None or entry.get("value") is None:
            continue
        lines.append(f"  • {entry['year']}: {entry['value']}{suffix}")
    if lines:
        lines.insert(0, "📅 **Yearly Producer Prices:**")

    summary_fields = [(key, label, template + suffix) for key, label, template in PRICE_SUMMARY_FIELDS]
    return lines + field_lines(data, summary_fields) + field_lines(data, CHANGE_FIELDS)


@tool
async def get_crop_prices(
    country: str,
    commodity: str,
    location: Annotated[Location, InjectedToolArg],
    years: int = DEFAULT_PRICE_YEARS,
) -> str:
    """Get historical producer prices for a crop commodity in a country from FAOSTAT.

    Args:
        country: Country name, e.g. "India".
        commodity: Crop commodity, e.g. "Rice" or "Wheat".
        years: How many recent years to include (default 5).
    """
    end_year = datetime.now().year - 1  # current year is rarely published yet
    start_year = end_year - max(years, 1) + 1

    def render(data: Any) -> list[str] | str:
        lines = price_lines(data)
        if not lines:
            return f"❌ No price data available for {commodity} in {country}"
        return [f"🌾 **{commodity} Prices in {country}:**", "", *lines]

    result = await fetch_and_format(
        "FAOSTATAPI",
        {"country": country, "commodity": commodity, "start_year": start_year, "end_year": end_year},
        render,
        location=location,
        latitude=location.latitude,
        longitude=location.longitude,
        what="crop price data",
        tool_name="get_crop_prices",
    )
    return result.text


@tool
async def identify_crops(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
    year: int | None = None,
) -> str:
    """Identify which crop is grown at a location using the USDA CropScape cropland data layer.

    Only works inside the contiguous United States.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
        year: Crop year (default: last year).
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)
    if not in_cropscape_coverage(lat, lon):
        return f"❌ Crop identification is only available in the contiguous United States, not at {location.name} ({lat}, {lon})"

    crop_year = year or datetime.now().year - 1

    def render(data: Any) -> list[str] | str:
        lines = field_lines(data, CROP_FIELDS)
        if not lines:
            return "❌ No crop data available from the API"
        return [f"🚜 **Crop Identification for {location.name}:**", "", *lines]

    result = await fetch_and_format(
        "USDACropScapeAPI",
        {"lat": lat, "lon": lon, "year": crop_year},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="crop identification data",
        tool_name="identify_crops",
    )
    return result.text
