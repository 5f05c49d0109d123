# localscope/services/analyzer.py
# -----------------------------------------------------------------------------
# Opportunity analysis orchestrator
#   validate -> (location || category) -> (census || competitors) -> score
# zip branch:     geocode zip, census by zip, radius search around centroid
# address branch: geocode address, zip via reverse lookup, radius search
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import re
from dataclasses import replace
from typing import Any, Awaitable, Tuple

from loguru import logger

from localscope.core.cache import ResponseCache, census_key, competitor_key, coordinate_id
from localscope.core.config import settings
from localscope.core.errors import ValidationError, ZipCodeUnresolved
from localscope.schemas.analysis import Coordinates, OpportunityReport, TagOut
from localscope.schemas.domain import (
    AddressQuery,
    CategoryTag,
    CompetitorResult,
    DemographicData,
    LocationQuery,
    ResolvedLocation,
    ZipQuery,
)
from localscope.services.category import CategoryResolver
from localscope.services.census import CensusClient
from localscope.services.geocoding import LocationResolver
from localscope.services.overpass import OverpassClient, miles_to_meters
from localscope.services.scoring import score

ZIP_RE = re.compile(r"^[0-9]{5}$")
MAX_TERM_LENGTH = 100


async def gather_fail_fast(*aws: Awaitable[Any]) -> Tuple[Any, ...]:
    """asyncio.gather that cancels the siblings once one of them fails."""
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return tuple(await asyncio.gather(*tasks))
    except BaseException:
        for t in tasks:
            if not t.done():
                t.cancel()
        raise


def validate(business_term: str, query: LocationQuery, max_radius: float) -> str:
    term = (business_term or "").strip()
    if not term or len(term) > MAX_TERM_LENGTH:
        raise ValidationError(
            f"Business term must be between 1 and {MAX_TERM_LENGTH} characters"
        )

    if isinstance(query, ZipQuery):
        if not ZIP_RE.match(query.zip or ""):
            raise ValidationError("Valid 5-digit zip code is required")
    elif isinstance(query, AddressQuery):
        if not (query.address or "").strip():
            raise ValidationError("Address is required")
        if not (0 < query.radius_miles <= max_radius):
            raise ValidationError(
                f"Radius must be greater than 0 and at most {max_radius:g} miles"
            )
    else:
        raise ValidationError("Either a zip code or an address is required")
    return term


class OpportunityAnalyzer:
    def __init__(
        self,
        locations: LocationResolver,
        categories: CategoryResolver,
        census: CensusClient,
        competitors: OverpassClient,
        cache: ResponseCache,
        default_zip_radius_miles: float = settings.DEFAULT_ZIP_RADIUS_MILES,
        max_radius_miles: float = settings.MAX_RADIUS_MILES,
    ):
        self.locations = locations
        self.categories = categories
        self.census = census
        self.competitors = competitors
        self.cache = cache
        self.default_zip_radius_miles = default_zip_radius_miles
        self.max_radius_miles = max_radius_miles

    async def analyze(
        self,
        business_term: str,
        query: LocationQuery,
        include_locations: bool = True,
        use_zip_boundary: bool = False,
        zip_radius_miles: float | None = None,
    ) -> OpportunityReport:
        term = validate(business_term, query, self.max_radius_miles)
        if zip_radius_miles is not None and not (
            0 < zip_radius_miles <= self.max_radius_miles
        ):
            raise ValidationError(
                f"Radius must be greater than 0 and at most {self.max_radius_miles:g} miles"
            )

        if isinstance(query, ZipQuery):
            location, tag = await gather_fail_fast(
                self.locations.geocode(query.zip), self.categories.resolve(term)
            )
            location = replace(location, zip=query.zip)
            radius_miles = zip_radius_miles or self.default_zip_radius_miles
            search_type = "zipcode"
        else:
            location, tag = await gather_fail_fast(
                self._locate_address(query.address.strip()),
                self.categories.resolve(term),
            )
            radius_miles = query.radius_miles
            search_type = "radius"

        if use_zip_boundary and search_type == "zipcode":
            radius_m = None
        else:
            radius_m = miles_to_meters(radius_miles)
        demographics, competitors = await gather_fail_fast(
            self._demographics(location.zip),
            self._competitors(location, radius_m, term, tag, include_locations),
        )

        result = score(
            demographics.population, demographics.median_income, competitors.count
        )
        logger.info(
            f"[analyze] {term!r} @ {location.label!r}: pop={demographics.population} "
            f"competitors={competitors.count} score={result.value}"
        )

        return OpportunityReport(
            population=demographics.population,
            median_income=demographics.median_income,
            competitor_count=competitors.count,
            opportunity_score=result.label,
            opportunity_value=result.value,
            competitor_locations=[
                Coordinates(lat=p.lat, lon=p.lon) for p in competitors.locations
            ],
            search_location=location.label,
            coordinates=Coordinates(lat=location.lat, lon=location.lon),
            search_type=search_type,
            category=TagOut(key=tag.key, value=tag.value),
            radius_miles=None if radius_m is None else radius_miles,
        )

    async def _locate_address(self, address: str) -> ResolvedLocation:
        location = await self.locations.geocode(address)
        if location.zip is not None:
            return location

        zip_code = await self.locations.reverse_to_zip(location.lat, location.lon)
        if zip_code is None:
            raise ZipCodeUnresolved(location.lat, location.lon)
        return replace(location, zip=zip_code)

    async def _demographics(self, zip_code: str) -> DemographicData:
        return await self.cache.get_or_fetch(
            census_key(zip_code), lambda: self.census.fetch(zip_code)
        )

    async def _competitors(
        self,
        location: ResolvedLocation,
        radius_m: int | None,
        term: str,
        tag: CategoryTag,
        include_locations: bool,
    ) -> CompetitorResult:
        if radius_m is None:
            key = competitor_key(location.zip, None, term, include_locations)
            return await self.cache.get_or_fetch(
                key,
                lambda: self.competitors.search_zip_boundary(
                    location.zip, tag, include_locations
                ),
            )

        key = competitor_key(
            coordinate_id(location.lat, location.lon), radius_m, term, include_locations
        )
        return await self.cache.get_or_fetch(
            key,
            lambda: self.competitors.search_radius(
                location.lat, location.lon, radius_m, tag, include_locations
            ),
        )
