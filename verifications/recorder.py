"""
verifications/recorder.py -- Best-effort write of a validation attempt.

The validation result is the primary response; the log entry is secondary.
record_verification() is always called (and waited on) after an attempt, but
a store failure of any kind is reported through logging only and never
re-raised, so it cannot replace the result the caller is about to return.
"""

import logging
from typing import Optional

from verifications.models import VerificationLog
from verifications.store import VerificationStore

logger = logging.getLogger("verifier.verifications")


def record_verification(store: VerificationStore, entry: VerificationLog) -> Optional[int]:
    """Persist entry. Returns the new ID, or None if the store rejected the write."""
    try:
        return store.log(entry)
    except Exception:
        logger.exception(
            "Failed to record verification for user=%s postcode=%s success=%s",
            entry.username,
            entry.postcode,
            entry.success,
        )
        return None
