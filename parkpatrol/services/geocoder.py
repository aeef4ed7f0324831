"""Reverse geocoding client for OpenStreetMap Nominatim."""

import logging
from typing import Any

import httpx

from parkpatrol.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class GeocoderError(Exception):
    """Base exception for geocoder errors."""

    pass


class ReverseGeocoder:
    """
    Resolves a coordinate to a human-readable place name.

    Features:
    - Single-shot request per lookup with a strict timeout
    - User-Agent header as required by the Nominatim usage policy
    - Never raises; failures are logged and mapped to "no result"
    """

    def __init__(
        self,
        base_url: str = settings.geocoder_base_url,
        user_agent: str = settings.geocoder_user_agent,
        timeout: float = settings.geocode_timeout_seconds,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout

        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        """Make a single HTTP request to the reverse endpoint."""
        url = f"{self.base_url}/reverse"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise GeocoderError(f"HTTP error {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise GeocoderError(f"Request error: {e}") from e
        except ValueError as e:
            raise GeocoderError(f"Invalid JSON response: {e}") from e

    @staticmethod
    def _place_name(data: dict[str, Any]) -> str | None:
        """Pick the most specific name from a Nominatim reverse result."""
        name = data.get("name")
        if name:
            return name

        address = data.get("address") or {}
        road = address.get("road")
        house_number = address.get("house_number")
        if road and house_number:
            return f"{house_number} {road}"
        if road:
            return road

        display_name = data.get("display_name")
        if display_name:
            return display_name.split(",")[0].strip() or None

        return None

    async def reverse_geocode(self, latitude: float, longitude: float) -> str | None:
        """
        Look up the place name for a coordinate.

        Returns:
            Place name, or None when the lookup failed or found nothing
        """
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "jsonv2",
            "addressdetails": 1,
        }

        try:
            data = await self._request(params)
        except GeocoderError as e:
            logger.warning(f"Reverse geocode failed for {latitude}, {longitude}: {e}")
            return None

        if not isinstance(data, dict) or "error" in data:
            logger.info(f"No place found for {latitude}, {longitude}")
            return None

        return self._place_name(data)


def get_geocoder() -> ReverseGeocoder:
    """Dependency to get a geocoder."""
    return ReverseGeocoder()
