# localscope/services/census.py
# -----------------------------------------------------------------------------
# US Census Bureau, ACS 5-year estimates by ZCTA
# - B01001_001E: total population
# - B19013_001E: median household income
# -----------------------------------------------------------------------------
from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from localscope.core.config import settings
from localscope.core.errors import DemographicDataUnavailable, DemographicFetchFailed
from localscope.schemas.domain import DemographicData

POPULATION_VAR = "B01001_001E"
INCOME_VAR = "B19013_001E"


def _to_int(raw: Any) -> int:
    # census encodes "no estimate" as large negative sentinels (-666666666)
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return 0
    return value if value > 0 else 0


class CensusClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str] = settings.CENSUS_API_KEY,
        base_url: str = settings.CENSUS_API_URL,
        year: str = settings.CENSUS_YEAR,
    ):
        self.client = client
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/{year}/acs/acs5"

    async def fetch(self, zip_code: str) -> DemographicData:
        params = {
            "get": f"{POPULATION_VAR},{INCOME_VAR}",
            "for": f"zip code tabulation area:{zip_code}",
        }
        if self.api_key:
            params["key"] = self.api_key

        try:
            r = await self.client.get(self.url, params=params)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Census] HTTP {e.response.status_code} for {zip_code}")
            raise DemographicFetchFailed(
                f"Census API returned status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[Census] transport error for {zip_code}: {e!r}")
            raise DemographicFetchFailed(f"Census request failed: {e}") from e

        # unknown ZCTAs come back as 204 No Content
        if r.status_code == 204 or not r.content.strip():
            raise DemographicDataUnavailable(zip_code)

        try:
            rows = r.json()
        except ValueError as e:
            raise DemographicFetchFailed("Census API returned an unreadable body") from e

        # [[header...], [population, income, zcta]]
        row = rows[1] if isinstance(rows, list) and len(rows) > 1 else None
        if not isinstance(row, list) or len(row) < 2:
            raise DemographicDataUnavailable(zip_code)

        population = _to_int(row[0])
        median_income = _to_int(row[1])
        if population == 0 or median_income == 0:
            raise DemographicDataUnavailable(zip_code)

        logger.info(f"[Census] {zip_code}: pop={population} income={median_income}")
        return DemographicData(population=population, median_income=median_income)
