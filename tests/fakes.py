"""In-memory stand-ins for the external-facing services."""

import asyncio

from localscope.core.cache import ResponseCache
from localscope.core.config import settings
from localscope.schemas.domain import CompetitorLocation, CompetitorResult, DemographicData, ResolvedLocation
from localscope.services.analyzer import OpportunityAnalyzer
from localscope.services.category import CategoryResolver


class FakeLocations:
    def __init__(self, locations=None, reverse=None, error=None):
        self.locations = locations or {}
        self.reverse = reverse or {}
        self.error = error
        self.calls = []

    async def geocode(self, text):
        self.calls.append(("geocode", text))
        if self.error:
            raise self.error
        return self.locations[text]

    async def reverse_to_zip(self, lat, lon):
        self.calls.append(("reverse", lat, lon))
        return self.reverse.get((lat, lon))


class FakeCensus:
    def __init__(self, data=None, error=None, delay=0.0):
        self.data = data or {}
        self.error = error
        self.delay = delay
        self.calls = []
        self.finished = False

    async def fetch(self, zip_code):
        self.calls.append(zip_code)
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.finished = True
        return self.data[zip_code]


class FakeOverpass:
    def __init__(self, count=3, error=None, delay=0.0):
        self.count = count
        self.error = error
        self.delay = delay
        self.calls = []
        self.finished = False

    def _result(self, include_locations):
        locations = tuple(CompetitorLocation(34.0 + i / 100, -118.0) for i in range(self.count))
        return CompetitorResult(self.count, locations if include_locations else ())

    async def search_radius(self, lat, lon, radius_m, tag, include_locations=False):
        self.calls.append(("radius", lat, lon, radius_m, tag, include_locations))
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.finished = True
        return self._result(include_locations)

    async def search_zip_boundary(self, zip_code, tag, include_locations=False):
        self.calls.append(("boundary", zip_code, tag, include_locations))
        if self.error:
            raise self.error
        return self._result(include_locations)


BEVERLY_HILLS = ResolvedLocation(34.0901, -118.4065, "Beverly Hills, CA 90210", "90210")
MAIN_ST = ResolvedLocation(40.7128, -74.006, "1 Main St, New York, NY", None)


def make_analyzer(locations=None, census=None, competitors=None, cache=None):
    locations = locations or FakeLocations(
        {"90210": BEVERLY_HILLS, "1 Main St": MAIN_ST},
        reverse={(MAIN_ST.lat, MAIN_ST.lon): "10007"},
    )
    census = census or FakeCensus(
        {"90210": DemographicData(21741, 154740), "10007": DemographicData(50000, 80000)}
    )
    competitors = competitors or FakeOverpass()
    analyzer = OpportunityAnalyzer(
        locations=locations,
        categories=CategoryResolver(api_key=None),
        census=census,
        competitors=competitors,
        cache=cache if cache is not None else ResponseCache(),
        default_zip_radius_miles=2.0,
        max_radius_miles=settings.MAX_RADIUS_MILES,
    )
    return analyzer, locations, census, competitors
