"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work.

Layer rule: no imports from api/, web/, core/, or verifications/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered local account.

    Created once at registration and never updated afterwards; there is no
    edit or delete path.
    """

    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Session:
    """The verified claims carried by the session cookie.

    Not stored server-side. A request either presents a valid, unexpired
    token (and gets a Session) or is anonymous.
    """

    username: str
