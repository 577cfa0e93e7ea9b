"""
auth/tokens.py -- Session JWTs, password hashing, and cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the username and a 7-day expiry. Verification returns None on any
       failure -- callers treat that as "anonymous", never as an error.

  Passwords: bcrypt directly (no passlib wrapper). Its cost factor makes
       brute-force expensive. _DUMMY_HASH enables timing equalization in
       authenticate_user() so response time does not reveal whether a
       username exists.

  Cookie: httpOnly, SameSite=Lax, path "/", Secure in production, max-age
       equal to the token lifetime so both expire together.

Layer rule: no imports from api/, web/, or verifications/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Session
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("verifier.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_BCRYPT_ROUNDS = 12

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only accepts 72 bytes of input; the register schema caps the
    UTF-8 encoded password at that length.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("verifier_timing_dummy")


# ---------------------------------------------------------------------------
# Session JWT encode / decode
# ---------------------------------------------------------------------------


def create_session_token(username: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT carrying the username.

    Args:
        username:       Account name, stored in the "username" claim.
        expire_seconds: Lifetime in seconds. 0 (default) uses
                        Settings.session_expire_seconds (7 days).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {"username": username, "exp": expire}
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session_token(token: str) -> Session | None:
    """Verify signature and expiry. Returns the Session or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    or expired token is the same as no token.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    username = payload.get("username")
    if not isinstance(username, str) or not username:
        return None
    return Session(username=username)


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the session JWT as an httpOnly cookie on the response."""
    response.set_cookie(
        _settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.cookie_secure,
        path="/",
        max_age=_settings.session_expire_seconds,
    )


def clear_session_cookie(response) -> None:
    """Expire the session cookie: empty value, max-age 0."""
    response.set_cookie(
        _settings.session_cookie_name,
        value="",
        httponly=True,
        samesite="lax",
        secure=_settings.cookie_secure,
        path="/",
        max_age=0,
    )
