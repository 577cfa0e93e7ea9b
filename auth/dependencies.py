"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The only credential is the session cookie set by POST /api/auth/login.

try_get_session() is the soft variant (returns None when anonymous).
get_session() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from web/ or verifications/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Session
from auth.tokens import decode_session_token
from core.config import get_settings


def try_get_session(request: Request) -> Session | None:
    """Return the Session for a valid, unexpired cookie, else None.

    Read-only and side-effect free. A missing, tampered, or expired cookie is
    the ordinary anonymous case, not an error.
    """
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None
    return decode_session_token(token)


def get_session(request: Request) -> Session:
    """Require a session. Raises HTTP 401 if the request is anonymous.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: Session = Depends(get_session)): ...
    """
    session = try_get_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Unauthorized"},
        )
    return session
