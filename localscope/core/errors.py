# localscope/core/errors.py
# -----------------------------------------------------------------------------
# Error taxonomy for the analysis pipeline
# - every service raises one of these; routers map them to HTTP once
# - `kind` selects the user-facing phrasing (demographic / competitor / ...)
# -----------------------------------------------------------------------------

DEMOGRAPHIC_MESSAGE = (
    "Unable to fetch demographic data. Please verify the zip code is valid."
)
COMPETITOR_MESSAGE = (
    "Unable to fetch competitor data. The service may be temporarily unavailable."
)
GENERIC_MESSAGE = "Failed to analyze location. Please try again."


class LocalscopeError(Exception):
    """Base class. `str(err)` is the internal detail, `user_message` is safe to show."""

    kind = "generic"
    status_code = 500

    def __init__(self, message: str = "", *, user_message: str | None = None):
        super().__init__(message or GENERIC_MESSAGE)
        self._user_message = user_message

    @property
    def user_message(self) -> str:
        return self._user_message or str(self)


class ValidationError(LocalscopeError):
    kind = "validation"
    status_code = 400


class LocationNotFound(LocalscopeError):
    kind = "location"
    status_code = 404

    def __init__(self, text: str):
        super().__init__(
            f"Address not found: {text!r}. Please try a more specific address."
        )
        self.text = text


class ZipCodeUnresolved(LocalscopeError):
    kind = "location"
    status_code = 422

    def __init__(self, lat: float, lon: float):
        super().__init__(
            "Could not determine a zip code for this address. "
            "Please include the zip code or try a nearby street address."
        )
        self.lat = lat
        self.lon = lon


class InvalidCoordinates(LocalscopeError):
    def __init__(self, lat, lon):
        super().__init__(
            f"Invalid coordinates returned from geocoding service: {lat!r}, {lon!r}"
        )


class GeocodingFailed(LocalscopeError):
    pass


class DemographicDataUnavailable(LocalscopeError):
    """Zip is well-formed but the census has no figures (PO boxes, business-only zips)."""

    kind = "demographic"

    def __init__(self, zip_code: str):
        super().__init__(
            f"No census data found for zip code {zip_code}. "
            "It may be invalid or non-residential."
        )
        self.zip_code = zip_code


class DemographicFetchFailed(LocalscopeError):
    kind = "demographic"

    @property
    def user_message(self) -> str:
        return DEMOGRAPHIC_MESSAGE


class CompetitorQueryFailed(LocalscopeError):
    kind = "competitor"

    @property
    def user_message(self) -> str:
        return COMPETITOR_MESSAGE
