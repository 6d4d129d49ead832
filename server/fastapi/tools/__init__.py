from models import ToolParameter, ToolSpec

from .weather import get_weather_data, get_precipitation_history
from .hydrology import get_groundwater_trend, get_soil_moisture
from .soil import get_soil_properties
from .crops import get_crop_prices, identify_crops
from .seismic import search_earthquakes
from .comprehensive import get_comprehensive_environmental_data

# Register all tools - add new tools here
tools = [
    get_weather_data,
    get_precipitation_history,
    get_groundwater_trend,
    get_soil_moisture,
    get_soil_properties,
    get_crop_prices,
    identify_crops,
    search_earthquakes,
    get_comprehensive_environmental_data,
]
tools_by_name = {t.name: t for t in tools}


def _json_type(prop: dict) -> str:
    if "type" in prop:
        return prop["type"]
    types = [option.get("type") for option in prop.get("anyOf", []) if option.get("type") not in (None, "null")]
    return " | ".join(types) or "any"


def tool_specs() -> list[ToolSpec]:
    """Describe the catalog as the model sees it (injected arguments excluded)."""
    specs = []
    for t in tools:
        schema = t.tool_call_schema.model_json_schema()
        required = set(schema.get("required", []))
        parameters = [
            ToolParameter(
                name=name,
                type=_json_type(prop),
                required=name in required,
                default=prop.get("default"),
                description=prop.get("description", ""),
            )
            for name, prop in schema.get("properties", {}).items()
        ]
        specs.append(ToolSpec(name=t.name, description=t.description, parameters=parameters))
    return specs


__all__ = ["tools", "tools_by_name", "tool_specs"]
