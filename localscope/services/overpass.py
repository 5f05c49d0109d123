# localscope/services/overpass.py
# -----------------------------------------------------------------------------
# Overpass API competitor search
# - radius mode: (around:r,lat,lon), preferred
# - zip-boundary mode: postal_code relation -> area -> search inside
# - each element reduced to one point: node itself / first geometry vertex
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from localscope.core.config import settings
from localscope.core.errors import CompetitorQueryFailed
from localscope.schemas.domain import CategoryTag, CompetitorLocation, CompetitorResult
from localscope.services.scoring import round_half_up

METERS_PER_MILE = 1609.34
AREA_ID_OFFSET = 3_600_000_000  # Overpass area id = relation id + 3.6e9
RETRYABLE_STATUS = {429, 504}


def miles_to_meters(miles: float) -> int:
    return round_half_up(miles * METERS_PER_MILE)


def _ql_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _tag_filter(tag: CategoryTag) -> str:
    return f"[{_ql_string(tag.key)}={_ql_string(tag.value)}]"


def _out(include_locations: bool) -> str:
    return "out geom;" if include_locations else "out count;"


def build_radius_query(
    tag: CategoryTag,
    lat: float,
    lon: float,
    radius_m: int,
    include_locations: bool,
    timeout_s: int = settings.OVERPASS_TIMEOUT_S,
) -> str:
    around = f"(around:{radius_m},{lat},{lon})"
    f = _tag_filter(tag)
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f"(\n  node{f}{around};\n  way{f}{around};\n);\n"
        f"{_out(include_locations)}"
    )


def build_area_lookup_query(
    zip_code: str, timeout_s: int = settings.OVERPASS_TIMEOUT_S
) -> str:
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f"relation[\"postal_code\"={_ql_string(zip_code)}];\n"
        "out ids;"
    )


def build_area_query(
    tag: CategoryTag,
    area_id: int,
    include_locations: bool,
    timeout_s: int = settings.OVERPASS_TIMEOUT_S,
) -> str:
    f = _tag_filter(tag)
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f"area({area_id})->.zip;\n"
        f"(\n  node{f}(area.zip);\n  way{f}(area.zip);\n);\n"
        f"{_out(include_locations)}"
    )


def element_point(element: Dict[str, Any]) -> Optional[CompetitorLocation]:
    if element.get("type") == "node" and "lat" in element and "lon" in element:
        return CompetitorLocation(lat=float(element["lat"]), lon=float(element["lon"]))
    geometry = element.get("geometry")
    first = geometry[0] if isinstance(geometry, list) and geometry else None
    if isinstance(first, dict) and "lat" in first and "lon" in first:
        return CompetitorLocation(lat=float(first["lat"]), lon=float(first["lon"]))
    return None


def parse_elements(payload: Dict[str, Any], include_locations: bool) -> CompetitorResult:
    elements: List[Dict[str, Any]] = [
        e for e in payload.get("elements") or [] if isinstance(e, dict)
    ]

    if include_locations:
        points = [p for p in (element_point(e) for e in elements) if p is not None]
        return CompetitorResult(count=len(points), locations=tuple(points))

    for e in elements:
        if e.get("type") == "count":
            try:
                return CompetitorResult(count=int(e.get("tags", {}).get("total", 0)))
            except (TypeError, ValueError):
                raise CompetitorQueryFailed("Overpass returned a malformed count")
    return CompetitorResult(count=len(elements))


class OverpassClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = settings.OVERPASS_URL,
        max_attempts: int = settings.OVERPASS_MAX_ATTEMPTS,
        retry_backoff: float = settings.OVERPASS_RETRY_BACKOFF,
    ):
        self.client = client
        self.url = url
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff

    async def _run(self, query: str) -> Dict[str, Any]:
        """POST one QL query. Timeouts / 429 / 504 are retried with linear backoff."""
        last_error = "no attempt made"
        for attempt in range(1, self.max_attempts + 1):
            try:
                r = await self.client.post(self.url, data={"data": query})
                if r.status_code in RETRYABLE_STATUS:
                    last_error = f"HTTP {r.status_code}"
                else:
                    r.raise_for_status()
                    payload = r.json()
                    if not isinstance(payload, dict) or not isinstance(
                        payload.get("elements", []), list
                    ):
                        raise CompetitorQueryFailed("Overpass API returned an unexpected body")
                    return payload
            except httpx.TimeoutException as e:
                last_error = f"timeout ({e!r})"
            except httpx.HTTPStatusError as e:
                logger.error(f"[Overpass] HTTP {e.response.status_code}")
                raise CompetitorQueryFailed(
                    f"Overpass API returned status {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"[Overpass] transport error: {e!r}")
                raise CompetitorQueryFailed(f"Overpass request failed: {e}") from e
            except ValueError as e:
                raise CompetitorQueryFailed("Overpass API returned an unreadable body") from e

            if attempt < self.max_attempts:
                wait = self.retry_backoff * attempt
                logger.warning(
                    f"[Overpass] {last_error}, retry {attempt}/{self.max_attempts} "
                    f"in {wait:.1f}s"
                )
                await asyncio.sleep(wait)

        logger.error(f"[Overpass] giving up after {self.max_attempts} attempts: {last_error}")
        raise CompetitorQueryFailed(f"Overpass API unavailable: {last_error}")

    async def search_radius(
        self,
        lat: float,
        lon: float,
        radius_m: int,
        tag: CategoryTag,
        include_locations: bool = False,
    ) -> CompetitorResult:
        query = build_radius_query(tag, lat, lon, radius_m, include_locations)
        result = parse_elements(await self._run(query), include_locations)
        logger.info(
            f"[Overpass] {tag.key}={tag.value} within {radius_m}m of "
            f"{lat:.4f},{lon:.4f}: {result.count}"
        )
        return result

    async def find_zip_area(self, zip_code: str) -> Optional[int]:
        payload = await self._run(build_area_lookup_query(zip_code))
        for e in payload.get("elements") or []:
            if isinstance(e, dict) and e.get("type") == "relation" and "id" in e:
                return AREA_ID_OFFSET + int(e["id"])
        return None

    async def search_zip_boundary(
        self, zip_code: str, tag: CategoryTag, include_locations: bool = False
    ) -> CompetitorResult:
        area_id = await self.find_zip_area(zip_code)
        if area_id is None:
            # plenty of zips have no boundary relation in OSM
            logger.info(f"[Overpass] no postal_code boundary for {zip_code}")
            return CompetitorResult(count=0)

        query = build_area_query(tag, area_id, include_locations)
        result = parse_elements(await self._run(query), include_locations)
        logger.info(f"[Overpass] {tag.key}={tag.value} in zip {zip_code}: {result.count}")
        return result
