"""Current weather lookup via Open-Meteo (no API key required)."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from agentcrew.models import CapabilityDefinition, ToolContext

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
CURRENT_FIELDS = "temperature_2m,weathercode,relativehumidity_2m"


class WeatherParams(BaseModel):
    latitude: float = Field(..., ge=-90, le=90, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude coordinate")
    city: str = Field(..., min_length=1, description="City name for reference")


class WeatherTool:
    """Executor for ``get_weather``."""

    def __init__(
        self,
        base_url: str = OPEN_METEO_URL,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    async def __call__(self, params: WeatherParams, context: ToolContext) -> dict[str, Any]:
        query = {
            "latitude": params.latitude,
            "longitude": params.longitude,
            "current": CURRENT_FIELDS,
            "timezone": "auto",
        }
        if self._client is not None:
            response = await self._client.get(self._base_url, params=query, timeout=self._timeout)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(self._base_url, params=query, timeout=self._timeout)

        response.raise_for_status()
        current = response.json()["current"]
        temperature = current["temperature_2m"]
        return {
            "city": params.city,
            "temperature": temperature,
            "weather_code": current.get("weathercode"),
            "humidity": current.get("relativehumidity_2m"),
            "message": f"Current weather in {params.city}: {temperature}°C",
        }


def weather_capability(tool: WeatherTool | None = None) -> CapabilityDefinition:
    return CapabilityDefinition(
        name="get_weather",
        description="Get current weather for a location",
        parameters=WeatherParams,
        executor=tool or WeatherTool(),
    )
