"""
verifications/models.py -- Domain dataclass for a recorded validation attempt.

Pure data container. Persistence lives in verifications/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class VerificationLog:
    """One postcode/suburb/state validation attempt and its outcome.

    postcode, suburb, and state are stored trimmed and uppercased. username
    is a loose reference to the acting account, not a foreign key.

    id and created_at are None until the store writes the record.
    """

    username: str
    postcode: str
    suburb: str
    state: str
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    id: Optional[int] = None
    created_at: Optional[str] = None  # ISO 8601, set by store on insert
