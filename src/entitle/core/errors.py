"""Exception hierarchy for the entitle engine.

Partial and degraded results are returned as tagged outputs, not raised.
Only hard failures live here.
"""


class EntitlementError(Exception):
    """Base exception for engine errors."""

    code = "ENTITLE_ERROR"


class InvalidInputError(EntitlementError, ValueError):
    """Malformed coordinate, unsupported city, or other bad request input."""

    code = "INVALID_INPUT"


class NoDistrictFoundError(EntitlementError, LookupError):
    """The spatial store is configured but no district contains the point."""

    code = "NO_DISTRICT"

    def __init__(self, city: str, lat: float, lng: float):
        super().__init__(f"No zoning district found for {city} at ({lat}, {lng})")
        self.city = city
        self.lat = lat
        self.lng = lng


class StoreUnavailableError(EntitlementError):
    """A required store is not configured (distinct from configured-but-empty)."""

    code = "STORE_UNAVAILABLE"


class AnalysisUnavailableError(EntitlementError):
    """No LLM provider is configured, or every provider failed to answer."""

    code = "ANALYSIS_UNAVAILABLE"
