# localscope/schemas/analysis.py
# -----------------------------------------------------------------------------
# /analyze request and report schemas (camelCase on the wire)
# -----------------------------------------------------------------------------
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from localscope.core.config import settings
from localscope.schemas.domain import AddressQuery, LocationQuery, ZipQuery


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisRequest(CamelModel):
    business_term: str
    zip_code: Optional[str] = Field(None, pattern=r"^[0-9]{5}$")
    address: Optional[str] = None
    radius_miles: Optional[float] = Field(None, gt=0, le=settings.MAX_RADIUS_MILES)
    include_locations: bool = True
    use_zip_boundary: bool = False

    @field_validator("business_term")
    @classmethod
    def _term_length(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= 100:
            raise ValueError("Business term must be between 1 and 100 characters")
        return v

    @field_validator("address")
    @classmethod
    def _blank_address(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def _location_given(self):
        if self.address is None and self.zip_code is None:
            raise ValueError("Either zipCode or address is required")
        return self

    def to_location_query(self, default_radius_miles: float) -> LocationQuery:
        """Address wins when both are given."""
        if self.address is not None:
            return AddressQuery(
                address=self.address,
                radius_miles=self.radius_miles or default_radius_miles,
            )
        return ZipQuery(zip=self.zip_code)


class Coordinates(BaseModel):
    lat: float
    lon: float


class TagOut(BaseModel):
    key: str
    value: str


class OpportunityReport(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    population: int
    median_income: int
    competitor_count: int
    opportunity_score: str
    opportunity_value: int
    competitor_locations: List[Coordinates] = []
    search_location: str
    coordinates: Optional[Coordinates] = None
    search_type: Literal["zipcode", "radius"]
    category: Optional[TagOut] = None
    radius_miles: Optional[float] = None
