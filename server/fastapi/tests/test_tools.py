"""Tests for the tool catalog.

The relay call is mocked, so these cover parameter defaults, upstream
parameter shapes, rendering and failure text.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from mcp_client import ToolCallError
from models import Location
from tools import tool_specs, tools, tools_by_name
from tools.base import fetch_and_format
from tools.comprehensive import comprehensive_lines
from tools.crops import in_cropscape_coverage
from tools.weather import get_weather_code_description

IOWA = Location(name="Ames, Iowa", latitude=42.0308, longitude=-93.6319)


def upstream_params(mock_mcp) -> dict:
    return mock_mcp.await_args[0][1]


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class TestCatalog:
    def test_names_are_unique(self):
        assert len(tools_by_name) == len(tools)

    def test_location_is_hidden_from_model(self):
        for spec in tool_specs():
            assert "location" not in [p.name for p in spec.parameters], spec.name

    def test_crop_prices_requires_country_and_commodity(self):
        spec = next(s for s in tool_specs() if s.name == "get_crop_prices")
        required = {p.name for p in spec.parameters if p.required}
        assert required == {"country", "commodity"}

    def test_earthquake_radius_default(self):
        spec = next(s for s in tool_specs() if s.name == "search_earthquakes")
        radius = next(p for p in spec.parameters if p.name == "radius_km")
        assert radius.default == 100
        assert not radius.required

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool_name", [t.name for t in tools if t.name != "get_crop_prices"])
    async def test_defaults_to_turn_location(self, tool_name, mock_mcp):
        mock_mcp.return_value = {}
        await tools_by_name[tool_name].ainvoke({"location": IOWA})

        params = upstream_params(mock_mcp)
        lat = params.get("latitude", params.get("lat"))
        lon = params.get("longitude", params.get("lon"))
        assert (lat, lon) == (IOWA.latitude, IOWA.longitude)


# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------

class TestWeather:
    @pytest.mark.asyncio
    async def test_paris_end_to_end(self, mock_mcp, paris):
        mock_mcp.return_value = {"current": {"temperature_2m": 18.2}}

        text = await tools_by_name["get_weather_data"].ainvoke({"location": paris})

        assert mock_mcp.await_args[0][0] == "OpenMeteoAPI"
        params = upstream_params(mock_mcp)
        assert params["latitude"] == 48.8566
        assert params["longitude"] == 2.3522
        assert "18.2°C" in text
        assert "Paris, France" in text
        assert "Retrieved at" in text

    @pytest.mark.asyncio
    async def test_model_coordinates_override_location(self, mock_mcp, paris):
        mock_mcp.return_value = {"current": {"temperature_2m": 5}}

        await tools_by_name["get_weather_data"].ainvoke({"location": paris, "latitude": 0.0, "longitude": 0.0})

        params = upstream_params(mock_mcp)
        assert params["latitude"] == 0.0
        assert params["longitude"] == 0.0

    @pytest.mark.asyncio
    async def test_missing_fields_are_omitted(self, mock_mcp, paris):
        mock_mcp.return_value = {"current": {"temperature_2m": 18.2, "weather_code": 3}}

        text = await tools_by_name["get_weather_data"].ainvoke({"location": paris})

        assert "Overcast" in text
        assert "Humidity" not in text
        assert "Wind" not in text

    @pytest.mark.asyncio
    async def test_no_current_block(self, mock_mcp, paris):
        mock_mcp.return_value = {"hourly": {}}
        text = await tools_by_name["get_weather_data"].ainvoke({"location": paris})
        assert text == "❌ No weather data available from the API"

    @pytest.mark.asyncio
    async def test_failure_is_returned_as_text(self, mock_mcp, paris):
        mock_mcp.side_effect = ToolCallError("boom")
        text = await tools_by_name["get_weather_data"].ainvoke({"location": paris})
        assert text == "❌ Error getting weather data: boom"

    def test_unknown_weather_code(self):
        assert get_weather_code_description(42) == "Unknown conditions"


class TestPrecipitation:
    @pytest.mark.asyncio
    async def test_renders_totals(self, mock_mcp, paris):
        mock_mcp.return_value = {"total_precipitation_mm": 42.5, "rainy_days": 9}

        text = await tools_by_name["get_precipitation_history"].ainvoke({"location": paris, "days": 14})

        assert mock_mcp.await_args[0][0] == "CHIRPSAPI"
        assert "42.5 mm" in text
        assert "Rainy Days:** 9" in text
        assert "last 14 days" in text

    @pytest.mark.asyncio
    async def test_default_window_is_30_days(self, mock_mcp, paris):
        mock_mcp.return_value = {}
        await tools_by_name["get_precipitation_history"].ainvoke({"location": paris})

        params = upstream_params(mock_mcp)
        start = date.fromisoformat(params["start_date"])
        end = date.fromisoformat(params["end_date"])
        assert (end - start).days == 30


# ---------------------------------------------------------------------------
# Hydrology and soil
# ---------------------------------------------------------------------------

class TestHydrology:
    @pytest.mark.asyncio
    async def test_groundwater(self, mock_mcp, paris):
        mock_mcp.return_value = {"groundwater_storage_anomaly_cm": -3.2, "trend_cm_per_year": -0.8}

        text = await tools_by_name["get_groundwater_trend"].ainvoke({"location": paris})

        assert mock_mcp.await_args[0][0] == "GRACEAPI"
        assert upstream_params(mock_mcp)["months"] == 12
        assert "-3.2 cm" in text
        assert "-0.8 cm/year" in text

    @pytest.mark.asyncio
    async def test_soil_moisture(self, mock_mcp, paris):
        mock_mcp.return_value = {"surface_soil_moisture": 0.21}

        text = await tools_by_name["get_soil_moisture"].ainvoke({"location": paris})

        assert mock_mcp.await_args[0][0] == "SMAPAPI"
        assert "0.21 m³/m³" in text
        assert "Root Zone" not in text

    @pytest.mark.asyncio
    async def test_soil_properties_skip_null_depths(self, mock_mcp, paris):
        mock_mcp.return_value = {
            "properties": {
                "clay": {"depths": {"0-5cm": 31, "5-15cm": None}},
                "sand": {"depths": {"0-5cm": None}},
            }
        }

        text = await tools_by_name["get_soil_properties"].ainvoke({"location": paris})

        assert "**CLAY**" in text
        assert "0-5cm: 31" in text
        assert "5-15cm" not in text
        assert "SAND" not in text

    @pytest.mark.asyncio
    async def test_soil_properties_empty(self, mock_mcp, paris):
        mock_mcp.return_value = {}
        text = await tools_by_name["get_soil_properties"].ainvoke({"location": paris})
        assert text == "❌ No soil data available from the API"


# ---------------------------------------------------------------------------
# Crops
# ---------------------------------------------------------------------------

class TestCrops:
    @pytest.mark.asyncio
    async def test_crop_prices(self, mock_mcp, paris):
        mock_mcp.return_value = {
            "unit": "USD/tonne",
            "prices": [{"year": 2022, "value": 310.0}, {"year": 2023, "value": 295.5}],
            "change_percent": -4.7,
        }

        text = await tools_by_name["get_crop_prices"].ainvoke({"location": paris, "country": "India", "commodity": "Rice"})

        assert mock_mcp.await_args[0][0] == "FAOSTATAPI"
        params = upstream_params(mock_mcp)
        assert params["country"] == "India"
        assert params["commodity"] == "Rice"
        assert params["end_year"] - params["start_year"] == 4
        assert "2023: 295.5 USD/tonne" in text
        assert "-4.7%" in text
        assert "Latest Price" not in text

    @pytest.mark.asyncio
    async def test_crop_prices_require_arguments(self, paris):
        with pytest.raises(ValidationError):
            await tools_by_name["get_crop_prices"].ainvoke({"location": paris})

    @pytest.mark.asyncio
    async def test_identify_crops_outside_us_skips_upstream(self, mock_mcp, paris):
        text = await tools_by_name["identify_crops"].ainvoke({"location": paris})

        mock_mcp.assert_not_awaited()
        assert "contiguous United States" in text

    @pytest.mark.asyncio
    async def test_identify_crops_in_iowa(self, mock_mcp):
        mock_mcp.return_value = {"crop_name": "Corn", "year": 2024}

        text = await tools_by_name["identify_crops"].ainvoke({"location": IOWA})

        assert mock_mcp.await_args[0][0] == "USDACropScapeAPI"
        assert "Corn" in text
        assert "Ames, Iowa" in text

    def test_coverage(self):
        assert in_cropscape_coverage(42.03, -93.63)
        assert not in_cropscape_coverage(48.85, 2.35)
        assert not in_cropscape_coverage(61.2, -149.9)  # Anchorage


# ---------------------------------------------------------------------------
# Seismic
# ---------------------------------------------------------------------------

class TestEarthquakes:
    @pytest.mark.asyncio
    async def test_default_radius(self, mock_mcp, paris):
        mock_mcp.return_value = {"count": 0, "earthquakes": []}

        text = await tools_by_name["search_earthquakes"].ainvoke({"location": paris})

        assert mock_mcp.await_args[0][0] == "USGSEarthquakeAPI"
        assert upstream_params(mock_mcp)["maxradiuskm"] == 100
        assert "Earthquakes Found:** 0" in text

    @pytest.mark.asyncio
    async def test_lists_events(self, mock_mcp, paris):
        mock_mcp.return_value = {
            "earthquakes": [{"magnitude": 4.1, "place": "10 km N of Somewhere", "depth_km": 12}],
        }

        text = await tools_by_name["search_earthquakes"].ainvoke({"location": paris, "radius_km": 250})

        assert upstream_params(mock_mcp)["maxradiuskm"] == 250
        assert "Earthquakes Found:** 1" in text
        assert "M4.1 | 10 km N of Somewhere | depth 12 km" in text

    @pytest.mark.asyncio
    async def test_failure(self, mock_mcp, paris):
        mock_mcp.side_effect = ToolCallError("HTTP 500")
        text = await tools_by_name["search_earthquakes"].ainvoke({"location": paris})
        assert text == "❌ Error getting earthquake data: HTTP 500"


# ---------------------------------------------------------------------------
# Comprehensive
# ---------------------------------------------------------------------------

class TestComprehensive:
    @pytest.mark.asyncio
    async def test_only_present_sections(self, mock_mcp, paris):
        mock_mcp.return_value = {
            "precipitation": {"total_precipitation_mm": 12.0},
            "groundwater": {"groundwater_storage_anomaly_cm": -1.5},
        }

        text = await tools_by_name["get_comprehensive_environmental_data"].ainvoke({"location": paris})

        assert mock_mcp.await_args[0][0] == "ComprehensiveEnvironmentalAPI"
        assert "**Precipitation**" in text
        assert "12.0 mm" in text
        assert "**Groundwater**" in text
        assert "-1.5 cm" in text
        assert "**Weather**" not in text
        assert "**Soil Moisture**" not in text
        assert "N/A" not in text
        assert "No data" not in text

    def test_weather_section_accepts_openmeteo_shape(self):
        lines = comprehensive_lines({"weather": {"current": {"temperature_2m": 20}}})
        assert "🌡️ **Temperature:** 20°C" in lines

    def test_nothing_present(self):
        assert comprehensive_lines({"unrelated": 1}) == []


# ---------------------------------------------------------------------------
# fetch_and_format
# ---------------------------------------------------------------------------

class TestFetchAndFormat:
    @pytest.mark.asyncio
    async def test_result_names_catalog_tool_and_upstream(self, mock_mcp, paris):
        mock_mcp.return_value = {"current": {"temperature_2m": 18.2}}

        result = await fetch_and_format(
            "OpenMeteoAPI", {}, lambda data: ["ok"],
            location=paris, latitude=paris.latitude, longitude=paris.longitude,
            what="weather data", tool_name="get_weather_data",
        )

        assert result.ok
        assert result.tool_name == "get_weather_data"
        assert result.upstream == "OpenMeteoAPI"
        assert result.raw_payload == {"current": {"temperature_2m": 18.2}}

    @pytest.mark.asyncio
    async def test_failure_keeps_names(self, mock_mcp, paris):
        mock_mcp.side_effect = ToolCallError("boom")

        result = await fetch_and_format(
            "GRACEAPI", {}, lambda data: ["ok"],
            location=paris, latitude=paris.latitude, longitude=paris.longitude,
            what="groundwater data", tool_name="get_groundwater_trend",
        )

        assert not result.ok
        assert result.tool_name == "get_groundwater_trend"
        assert result.upstream == "GRACEAPI"
        assert result.text == "❌ Error getting groundwater data: boom"
