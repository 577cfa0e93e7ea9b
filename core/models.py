from dataclasses import dataclass
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Australian postcodes are always four digits. A domain rule -- not an API contract.
POSTCODE_PATTERN = r"^\d{4}$"

# The eight recognized state and territory codes.
AU_STATES = frozenset({"NSW", "VIC", "QLD", "WA", "SA", "TAS", "ACT", "NT"})

VALID_MESSAGE = "The postcode, suburb, and state input are valid."
UPSTREAM_LOG_MESSAGE = "Validation failed due to an upstream error."


class UpstreamError(Exception):
    """The address lookup service failed: transport, timeout, HTTP status, or payload."""


@dataclass
class Locality:
    """One candidate row returned by the address lookup service.

    Fields are kept as the provider sent them. latitude/longitude may arrive
    as numbers or strings; the validator parses them.
    """

    location: str = ""
    postcode: str = ""
    state: str = ""
    latitude: Any = None
    longitude: Any = None

    @classmethod
    def from_dict(cls, raw: dict) -> "Locality":
        return cls(
            location=str(raw.get("location") or ""),
            postcode=str(raw.get("postcode") or ""),
            state=str(raw.get("state") or ""),
            latitude=raw.get("latitude"),
            longitude=raw.get("longitude"),
        )


@dataclass
class ValidationResult:
    success: bool
    message: str
    lat: Optional[float] = None
    lng: Optional[float] = None
