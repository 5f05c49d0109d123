# localscope/schemas/domain.py
# -----------------------------------------------------------------------------
# Internal value types passed between services (immutable)
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class ZipQuery:
    zip: str


@dataclass(frozen=True)
class AddressQuery:
    address: str
    radius_miles: float


LocationQuery = Union[ZipQuery, AddressQuery]


@dataclass(frozen=True)
class ResolvedLocation:
    lat: float
    lon: float
    label: str
    zip: Optional[str] = None


@dataclass(frozen=True)
class CategoryTag:
    """OpenStreetMap tag, e.g. amenity=cafe."""

    key: str
    value: str


@dataclass(frozen=True)
class DemographicData:
    population: int
    median_income: int


@dataclass(frozen=True)
class CompetitorLocation:
    lat: float
    lon: float


@dataclass(frozen=True)
class CompetitorResult:
    count: int
    locations: Tuple[CompetitorLocation, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Score:
    label: str
    value: int
