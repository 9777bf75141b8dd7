from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class Place:
    label: str            # "City, Region", prefilled into the listing's location
    latitude: float
    longitude: float


def format_place(data: dict) -> Optional[str]:
    city = data.get("city") or data.get("locality") or data.get("principalSubdivision")
    region = data.get("principalSubdivisionCode") or data.get("principalSubdivision")
    if not city and not region:
        return None
    if not region or city == region:
        return city or region
    if not city:
        return region
    return f"{city}, {region}"


async def reverse_lookup(
    latitude: float,
    longitude: float,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[Place]:
    """
    Locality for a coordinate pair. Never raises: a failed lookup returns None
    and the seller types the location by hand.
    """
    params = {"latitude": latitude, "longitude": longitude, "localityLanguage": "en"}
    own_client = client is None
    c = client or httpx.AsyncClient(timeout=settings.GEOCODE_TIMEOUT_SEC)
    try:
        resp = await c.get(settings.GEOCODE_URL, params=params)
        resp.raise_for_status()
        label = format_place(resp.json())
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("reverse geocode failed for (%s, %s): %s", latitude, longitude, e)
        return None
    finally:
        if own_client:
            await c.aclose()
    if not label:
        return None
    return Place(label=label, latitude=latitude, longitude=longitude)
