"""
core/validator.py -- Postcode / suburb / state validation against the address
lookup service.

Match policy, applied to the provider's rows in the order they were returned:
  1. Keep rows in the target state, then rows with the exact target postcode.
     None left -> "postcode does not exist in the state".
  2. Strict suburb match (trimmed, uppercased) wins.
  3. Otherwise the first row whose fuzzy key equals, starts with, is a prefix
     of, or contains the target's fuzzy key.
     None -> "postcode does not match the suburb".

Tie-break is first match in upstream order; it is only as stable as the
provider's ordering.

No side effects beyond logging. UpstreamError from the fetcher propagates --
the caller owns the decision about how an upstream failure is reported.
"""

import logging
import math
import re
from collections.abc import Callable
from typing import Any, Optional

from core.config import get_settings
from core.fetcher import fetch_localities
from core.models import AU_STATES, POSTCODE_PATTERN, VALID_MESSAGE, Locality, ValidationResult

logger = logging.getLogger("verifier.validator")

_POSTCODE_RE = re.compile(POSTCODE_PATTERN)
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")

# DEBUG_VALIDATION promotes the match-trace lines to INFO so they show up
# under the default logging config.
_trace = logger.info if get_settings().debug_validation else logger.debug


def normalize(value: str) -> str:
    """Trim and uppercase -- the strict comparison form."""
    return value.strip().upper()


def fuzzy_key(value: str) -> str:
    """Uppercase, collapse runs of punctuation to single spaces, trim.

    "St. Kilda-East" and "ST KILDA EAST" share the key "ST KILDA EAST".
    """
    spaced = _NON_ALNUM_RE.sub(" ", normalize(value))
    return _WHITESPACE_RE.sub(" ", spaced).strip()


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def check_address_input(postcode: str, suburb: str, state: str) -> Optional[str]:
    """Return a user-facing message if the input cannot be looked up, else None."""
    if not _POSTCODE_RE.match(postcode.strip()):
        return "Postcode must be 4 digits."
    if not suburb.strip():
        return "Suburb is required."
    if normalize(state) not in AU_STATES:
        return "Invalid state."
    return None


def match_locality(candidates: list[Locality], suburb: str) -> Optional[Locality]:
    """Apply the match policy to already-filtered candidates and return the hit."""
    target = normalize(suburb)
    for row in candidates:
        if normalize(row.location) == target:
            return row

    target_key = fuzzy_key(suburb)
    for row in candidates:
        key = fuzzy_key(row.location)
        if key == target_key or key.startswith(target_key) or target_key.startswith(key) or target_key in key:
            return row
    return None


def validate_address(
    postcode: str,
    suburb: str,
    state: str,
    fetch: Optional[Callable[..., list[Locality]]] = None,
) -> ValidationResult:
    """Validate a postcode/suburb/state triple.

    Input problems short-circuit without calling the provider. Raises
    UpstreamError (from fetch) if the provider cannot be queried.
    """
    problem = check_address_input(postcode, suburb, state)
    if problem:
        return ValidationResult(success=False, message=problem)

    pc = normalize(postcode)
    st = normalize(state)

    rows = (fetch or fetch_localities)(pc, st)
    in_state = [r for r in rows if normalize(r.state) == st]
    exact_pc = [r for r in in_state if r.postcode.strip() == pc]
    _trace(
        "Filter counts total=%d in_state=%d exact_postcode=%d target=(%s, %s, %s)",
        len(rows),
        len(in_state),
        len(exact_pc),
        pc,
        normalize(suburb),
        st,
    )

    if not exact_pc:
        message = f"The postcode {postcode} does not exist in the state {state}."
        _trace("Result: %s", message)
        return ValidationResult(success=False, message=message)

    hit = match_locality(exact_pc, suburb)
    if hit is None:
        message = f"The postcode {postcode} does not match the suburb {suburb}."
        _trace("Result: %s (first candidate %s)", message, exact_pc[0].location)
        return ValidationResult(success=False, message=message)

    lat = _to_float(hit.latitude)
    lng = _to_float(hit.longitude)
    _trace("Result: OK suburb=%s lat=%s lng=%s", hit.location, lat, lng)
    return ValidationResult(success=True, message=VALID_MESSAGE, lat=lat, lng=lng)
