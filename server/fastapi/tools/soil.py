from typing import Annotated, Any

from langchain_core.tools import InjectedToolArg, tool

from models import Location
from .base import fetch_and_format, resolve_coordinates

SOIL_PROPERTIES = "sand,clay,silt,soc,phh2o"
SOIL_DEPTHS = "0-5cm,5-15cm,15-30cm"


def soil_property_lines(properties: Any) -> list[str]:
    """One block per property, listing the depths that have values."""
    if not isinstance(properties, dict):
        return []
    lines = []
    for name, prop in properties.items():
        if not isinstance(prop, dict) or not isinstance(prop.get("depths"), dict):
            continue
        depth_lines = [f"  • {depth}: {value}" for depth, value in prop["depths"].items() if value is not None]
        if not depth_lines:
            continue
        lines.append(f"🔬 **{name.upper()}**")
        lines.extend(depth_lines)
        lines.append("")
    return lines[:-1] if lines else lines


@tool
async def get_soil_properties(
    location: Annotated[Location, InjectedToolArg],
    latitude: float | None = None,
    longitude: float | None = None,
) -> str:
    """Get soil composition (sand, clay, silt, organic carbon, pH) from the SoilGrids API.

    Args:
        latitude: Latitude coordinate. Defaults to the user's location.
        longitude: Longitude coordinate. Defaults to the user's location.
    """
    lat, lon = resolve_coordinates(location, latitude, longitude)

    def render(data: Any) -> list[str] | str:
        lines = soil_property_lines(data.get("properties") if isinstance(data, dict) else None)
        if not lines:
            return "❌ No soil data available from the API"
        return [f"🌱 **Soil Properties for {location.name}:**", "", *lines]

    result = await fetch_and_format(
        "SoilGridsAPI",
        {"lat": lat, "lon": lon, "property": SOIL_PROPERTIES, "depth": SOIL_DEPTHS},
        render,
        location=location,
        latitude=lat,
        longitude=lon,
        what="soil data",
        tool_name="get_soil_properties",
    )
    return result.text
