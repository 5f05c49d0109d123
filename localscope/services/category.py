# localscope/services/category.py
# -----------------------------------------------------------------------------
# Business term -> OpenStreetMap tag
# Cheapest first:
#   1) exact dictionary hit  2) generic words stripped  3) substring
#   4) per-word substring    5) memo / DB               6) Gemini
#   7) literal amenity=<term>
# resolve() never raises.
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import json
import re
from typing import Dict, Optional

import httpx
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from localscope.core.config import settings
from localscope.db import crud
from localscope.schemas.domain import CategoryTag

_cafe = CategoryTag("amenity", "cafe")
_restaurant = CategoryTag("amenity", "restaurant")
_gym = CategoryTag("leisure", "fitness_centre")
_books = CategoryTag("shop", "books")
_pharmacy = CategoryTag("amenity", "pharmacy")
_fuel = CategoryTag("amenity", "fuel")
_hotel = CategoryTag("tourism", "hotel")
_bank = CategoryTag("amenity", "bank")
_supermarket = CategoryTag("shop", "supermarket")
_bar = CategoryTag("amenity", "bar")
_pub = CategoryTag("amenity", "pub")
_clinic = CategoryTag("amenity", "clinic")
_hospital = CategoryTag("amenity", "hospital")

# Insertion order decides ties in the fuzzy steps.
BUSINESS_CATEGORIES: Dict[str, CategoryTag] = {
    "coffee shop": _cafe,
    "coffee": _cafe,
    "cafe": _cafe,
    "coffeeshop": _cafe,
    "coffeehouse": _cafe,
    "restaurant": _restaurant,
    "restaurants": _restaurant,
    "dining": _restaurant,
    "gym": _gym,
    "fitness": _gym,
    "fitness center": _gym,
    "fitnesscentre": _gym,
    "bookstore": _books,
    "book store": _books,
    "books": _books,
    "pharmacy": _pharmacy,
    "pharmacies": _pharmacy,
    "drugstore": _pharmacy,
    "gas station": _fuel,
    "gas": _fuel,
    "fuel": _fuel,
    "gasoline": _fuel,
    "hotel": _hotel,
    "hotels": _hotel,
    "bank": _bank,
    "banks": _bank,
    "supermarket": _supermarket,
    "grocery": _supermarket,
    "grocery store": _supermarket,
    "groceries": _supermarket,
    "bar": _bar,
    "bars": _bar,
    "pub": _pub,
    "pubs": _pub,
    "clinic": _clinic,
    "clinics": _clinic,
    "hospital": _hospital,
    "hospitals": _hospital,
}

GENERIC_WORDS_RE = re.compile(r"\b(shop|store|center|centre|place|location)\b")
FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)
OSM_TOKEN_RE = re.compile(r"^[a-z0-9_]+$")
AI_TAG_KEYS = {"amenity", "shop", "leisure", "tourism", "office", "craft", "healthcare"}

PROMPT = (
    "Map the business type \"{term}\" to the single OpenStreetMap tag that best "
    "identifies businesses of that type. Reply with only a JSON object of the "
    'form {{"key": "<tag key>", "value": "<tag value>"}} where the key is one of '
    "amenity, shop, leisure, tourism, office, craft, healthcare. No explanation."
)


def normalize(term: str) -> str:
    return " ".join((term or "").lower().split())


def match_dictionary(term: str) -> Optional[CategoryTag]:
    """Dictionary steps 1-4 on an already normalized term."""
    if term in BUSINESS_CATEGORIES:
        return BUSINESS_CATEGORIES[term]

    cleaned = " ".join(GENERIC_WORDS_RE.sub(" ", term).split())
    if cleaned and cleaned in BUSINESS_CATEGORIES:
        return BUSINESS_CATEGORIES[cleaned]

    if not term:
        return None

    for key, tag in BUSINESS_CATEGORIES.items():
        if key in term or term in key:
            return tag

    for word in term.split():
        if len(word) <= 2:
            continue
        for key, tag in BUSINESS_CATEGORIES.items():
            if word in key or key in word:
                return tag

    return None


def parse_ai_tag(text: str) -> Optional[CategoryTag]:
    """Accept exactly {"key": ..., "value": ...}; anything else is None."""
    if not isinstance(text, str):
        return None
    body = text.strip()
    m = FENCE_RE.match(body)
    if m:
        body = m.group(1)
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict) or set(data) != {"key", "value"}:
        return None
    key, value = data["key"], data["value"]
    if not (isinstance(key, str) and isinstance(value, str)):
        return None
    if key not in AI_TAG_KEYS or not OSM_TOKEN_RE.match(value):
        return None
    return CategoryTag(key=key, value=value)


class CategoryResolver:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        api_key: Optional[str] = settings.GEMINI_API_KEY,
        model: str = settings.GEMINI_MODEL,
        api_url: str = settings.GEMINI_API_URL,
        ai_timeout: float = settings.CATEGORY_AI_TIMEOUT,
    ):
        self.client = client
        self.session_factory = session_factory
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.ai_timeout = ai_timeout
        self._memo: Dict[str, CategoryTag] = {}

    @property
    def ai_enabled(self) -> bool:
        return bool(self.api_key) and self.client is not None

    async def resolve(self, term: str) -> CategoryTag:
        normalized = normalize(term)

        tag = match_dictionary(normalized)
        if tag is not None:
            return tag

        if normalized in self._memo:
            return self._memo[normalized]

        tag = await self._load(normalized)
        if tag is not None:
            self._memo[normalized] = tag
            return tag

        if normalized and self.ai_enabled:
            tag = await self._ask_ai(normalized)
            if tag is not None:
                self._memo[normalized] = tag
                await self._store(normalized, tag)
                return tag

        logger.warning(f"[category] degraded to literal amenity={normalized!r}")
        return CategoryTag(key="amenity", value=normalized)

    # ── AI fallback ──────────────────────────────────────────────────────────
    async def _ask_ai(self, term: str) -> Optional[CategoryTag]:
        try:
            text = await asyncio.wait_for(self._generate(term), timeout=self.ai_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[category] Gemini timed out after {self.ai_timeout}s")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"[category] Gemini request failed: {e!r}")
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"[category] Gemini response malformed: {e!r}")
            return None

        tag = parse_ai_tag(text)
        if tag is None:
            logger.warning(f"[category] Gemini answer rejected: {text!r}")
        else:
            logger.info(f"[category] Gemini: {term!r} -> {tag.key}={tag.value}")
        return tag

    async def _generate(self, term: str) -> str:
        url = f"{self.api_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": PROMPT.format(term=term)}]}],
            "generationConfig": {
                "temperature": 0,
                "responseMimeType": "application/json",
            },
        }
        r = await self.client.post(
            url,
            json=body,
            headers={"x-goog-api-key": self.api_key},
            timeout=self.ai_timeout,
        )
        r.raise_for_status()
        data = r.json()
        return data["candidates"][0]["content"]["parts"][0]["text"]

    # ── persisted memo ───────────────────────────────────────────────────────
    async def _load(self, term: str) -> Optional[CategoryTag]:
        if self.session_factory is None or not term:
            return None
        try:
            async with self.session_factory() as db:
                row = await crud.get_category_tag(db, term)
        except SQLAlchemyError as e:
            logger.warning(f"[category] tag store read failed: {e!r}")
            return None
        return CategoryTag(key=row.key, value=row.value) if row else None

    async def _store(self, term: str, tag: CategoryTag) -> None:
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as db:
                await crud.save_category_tag(db, term=term, key=tag.key, value=tag.value)
        except SQLAlchemyError as e:
            logger.warning(f"[category] tag store write failed: {e!r}")
