"""
fetcher.py -- Calls to the external address lookup service (Australia Post
postcode search).

The provider collapses its locality list to a single object when there is
exactly one match, and omits it (or sends an empty string) when there are
none. _as_list() absorbs that so callers always get a list of Locality rows.

Every failure -- transport, timeout, non-2xx, non-JSON -- raises UpstreamError.
No retries: the caller decides what a failed lookup means.
"""

import logging
from typing import Any, Optional

import requests

from core.config import get_settings
from core.models import Locality, UpstreamError

logger = logging.getLogger("verifier.fetcher")

_settings = get_settings()

# Module-level session shared across all lookups for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- this is a known API.
_session = requests.Session()
_session.max_redirects = 3


def _as_list(value: Any) -> list[dict]:
    """Return the provider's locality payload as a list of dicts."""
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def fetch_localities(q: str, state: Optional[str] = None) -> list[Locality]:
    """Query the address lookup service and return the candidate localities.

    Args:
        q:     Search term. The validator passes the postcode.
        state: Optional state filter (e.g. "NSW").

    Raises UpstreamError on any failure.
    """
    params: dict[str, str] = {"q": q}
    if state:
        params["state"] = state
    headers = {
        "Authorization": f"Bearer {_settings.auspost_bearer}",
        "Accept": "application/json",
    }
    logger.debug("Locality request q=%s state=%s", q, state)

    try:
        resp = _session.get(
            _settings.auspost_base_url,
            params=params,
            headers=headers,
            timeout=_settings.auspost_timeout_seconds,
        )
    except requests.Timeout as e:
        logger.warning("Locality lookup timed out for q=%s: %s", q, e)
        raise UpstreamError("Address lookup service timed out.") from e
    except requests.RequestException as e:
        logger.warning("Locality lookup failed for q=%s: %s", q, e)
        raise UpstreamError("Address lookup service is unreachable.") from e

    if not resp.ok:
        logger.warning("Locality lookup returned %s %s: %s", resp.status_code, resp.reason, resp.text[:500])
        raise UpstreamError(f"Address lookup service error: {resp.status_code} {resp.reason}")

    try:
        payload = resp.json()
    except ValueError as e:
        logger.warning("Locality lookup returned non-JSON: %s", resp.text[:500])
        raise UpstreamError("Address lookup service returned non-JSON.") from e

    localities = payload.get("localities") if isinstance(payload, dict) else None
    rows = _as_list(localities.get("locality") if isinstance(localities, dict) else None)
    logger.debug("Locality results: %d", len(rows))
    return [Locality.from_dict(r) for r in rows]
