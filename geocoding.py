"""
Reverse geocoding for the "detect my location" button on the address form.

Coordinates come from the browser; the lookup goes through Nominatim
(OpenStreetMap), which needs no API key but does require a User-Agent.
"""
import logging
import os
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException

from schemas import Coordinates, DetectedAddress

logger = logging.getLogger(__name__)

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/reverse")
USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "bouquet-bar-api/1.0 (hello@bouquetbar.com)")
TIMEOUT_SECONDS = 15.0

router = APIRouter(prefix="/api/location", tags=["location"])


class GeocodingError(Exception):
    """Raised when a location cannot be turned into an address."""


def extract_address(data: dict) -> DetectedAddress:
    """Map a Nominatim response onto the fields of the address form."""
    if not data or not data.get("address"):
        raise GeocodingError("No address found for your location")

    address = data["address"]
    house_number = address.get("house_number", "")
    road = address.get("road") or address.get("street") or ""
    suburb = address.get("suburb") or address.get("neighbourhood") or address.get("quarter") or ""
    city = (
        address.get("city")
        or address.get("municipality")
        or address.get("town")
        or address.get("village")
        or ""
    )
    state = address.get("state") or address.get("region") or ""

    line1 = ", ".join(part for part in (house_number, road, suburb) if part)
    return DetectedAddress(
        address_line1=line1 or "Address details not available",
        city=city or "City not detected",
        state=state or "State not detected",
        postal_code=address.get("postcode", ""),
        country=address.get("country") or "India",
    )


async def reverse_geocode(latitude: float, longitude: float,
                          client: Optional[httpx.AsyncClient] = None) -> DetectedAddress:
    params = {"format": "json", "lat": latitude, "lon": longitude, "addressdetails": 1}
    headers = {"User-Agent": USER_AGENT}

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=TIMEOUT_SECONDS)
    try:
        response = await client.get(NOMINATIM_URL, params=params, headers=headers)
        if response.status_code != 200:
            raise GeocodingError(f"Geocoding service unavailable ({response.status_code})")
        return extract_address(response.json())
    except httpx.HTTPError as exc:
        raise GeocodingError(f"Geocoding request failed: {exc}") from exc
    except ValueError as exc:
        raise GeocodingError("Geocoding service returned invalid JSON") from exc
    finally:
        if owns_client:
            await client.aclose()


@router.post("/reverse", response_model=DetectedAddress)
async def reverse(coordinates: Coordinates):
    """Turn browser coordinates into a pre-filled address."""
    try:
        return await reverse_geocode(coordinates.latitude, coordinates.longitude)
    except GeocodingError as exc:
        logger.warning("Reverse geocoding failed for (%s, %s): %s",
                       coordinates.latitude, coordinates.longitude, exc)
        raise HTTPException(
            status_code=502,
            detail="Failed to convert location to address. Please enter manually.",
        )
