# localscope/core/config.py
# -----------------------------------------------------------------------------
# Global settings (pydantic-settings v2)
# - Reads .env and OS environment variables into a Settings object
# - Types, defaults and external endpoints live in one place
# -----------------------------------------------------------------------------
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # basics
    APP_NAME: str = "Localscope"
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite+aiosqlite:///./localscope.db"

    # logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # shared HTTP client
    HTTP_TIMEOUT: float = 15.0
    HTTP_USER_AGENT: str = "LocalOpportunityAnalyzer/1.0"  # required by Nominatim

    # US Census Bureau (ACS 5-year)
    CENSUS_API_KEY: str | None = None
    CENSUS_API_URL: str = "https://api.census.gov/data"
    CENSUS_YEAR: str = "2022"

    # Nominatim geocoding
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    GEOCODER_COUNTRY_CODES: str | None = "us"

    # Overpass spatial queries
    OVERPASS_URL: str = "https://overpass-api.de/api/interpreter"
    OVERPASS_TIMEOUT_S: int = 25  # server-side [timeout:..] in the QL header
    OVERPASS_MAX_ATTEMPTS: int = 3
    OVERPASS_RETRY_BACKOFF: float = 1.5

    # Gemini category fallback (disabled without a key)
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    CATEGORY_AI_TIMEOUT: float = 8.0

    # analysis
    CACHE_TTL_SECONDS: float = 3600.0
    DEFAULT_ZIP_RADIUS_MILES: float = 2.0
    DEFAULT_ADDRESS_RADIUS_MILES: float = 1.0
    MAX_RADIUS_MILES: float = 50.0

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore"  # ignore unrelated keys in .env
    )


settings = Settings()
