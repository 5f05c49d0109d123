# localscope/services/geocoding.py
# -----------------------------------------------------------------------------
# Nominatim (OpenStreetMap) forward / reverse geocoding
# - geocode(): free text (address or zip) -> ResolvedLocation
# - reverse_to_zip(): coordinates -> 5-digit US zip, or None
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
import re
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from localscope.core.config import settings
from localscope.core.errors import GeocodingFailed, InvalidCoordinates, LocationNotFound
from localscope.schemas.domain import ResolvedLocation

ZIP_RE = re.compile(r"^(\d{5})(?:-\d{4})?$")


def extract_zip(address: Optional[Dict[str, Any]]) -> Optional[str]:
    """Pull a US zip out of a Nominatim `address` block. ZIP+4 is cut to 5 digits."""
    postcode = str((address or {}).get("postcode") or "").strip()
    m = ZIP_RE.match(postcode)
    return m.group(1) if m else None


def _parse_coordinate(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return math.nan
    return value


class LocationResolver:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = settings.NOMINATIM_URL,
        country_codes: str | None = settings.GEOCODER_COUNTRY_CODES,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.country_codes = country_codes

    async def _get(self, path: str, params: Dict[str, str]) -> Any:
        try:
            r = await self.client.get(f"{self.base_url}/{path}", params=params)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Nominatim] {path} HTTP {e.response.status_code}")
            raise GeocodingFailed(
                f"Geocoding API returned status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[Nominatim] {path} transport error: {e!r}")
            raise GeocodingFailed(f"Geocoding request failed: {e}") from e
        except ValueError as e:
            raise GeocodingFailed("Geocoding API returned an unreadable body") from e

    async def geocode(self, text: str) -> ResolvedLocation:
        """Best (first) candidate for `text`."""
        params = {"q": text, "format": "json", "limit": "1", "addressdetails": "1"}
        if self.country_codes:
            params["countrycodes"] = self.country_codes

        data = await self._get("search", params)
        if not isinstance(data, list) or not data:
            raise LocationNotFound(text)

        best = data[0]
        if not isinstance(best, dict):
            raise GeocodingFailed("Geocoding API returned an unexpected body")
        lat = _parse_coordinate(best.get("lat"))
        lon = _parse_coordinate(best.get("lon"))
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinates(best.get("lat"), best.get("lon"))

        location = ResolvedLocation(
            lat=lat,
            lon=lon,
            label=best.get("display_name") or text,
            zip=extract_zip(best.get("address")),
        )
        logger.info(f"[Nominatim] {text!r} -> {lat:.5f},{lon:.5f} zip={location.zip}")
        return location

    async def reverse_to_zip(self, lat: float, lon: float) -> Optional[str]:
        """None when the point has no 5-digit postcode (not an error)."""
        params = {
            "lat": str(lat),
            "lon": str(lon),
            "format": "json",
            "addressdetails": "1",
        }
        data = await self._get("reverse", params)
        if not isinstance(data, dict):
            return None
        zip_code = extract_zip(data.get("address"))
        if zip_code is None:
            logger.info(f"[Nominatim] no zip at {lat:.5f},{lon:.5f}")
        return zip_code
