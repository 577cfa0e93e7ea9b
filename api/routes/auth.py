"""
api/routes/auth.py -- Registration, login, logout, and session introspection.

Routes:
  POST /api/auth/register  -- create an account; 201 {ok, id}
  POST /api/auth/login     -- password login; sets the session cookie
  POST /api/auth/logout    -- clears the session cookie; always 200
  GET  /api/auth/me        -- {username} for the current session, or null

Security:
  POST /login is rate-limited per client address (api.limiter) before the
    body is even parsed, so refused attempts never reach the store.
  authenticate_user() provides timing equalization -- use it, never inline
    get_by_username() + verify_password().
  Unknown username and wrong password share one 401 message.
  Cache-Control: no-store on login responses.

Blocking work (SQLAlchemy, bcrypt) runs in the thread pool so the event loop
stays free while one request waits on the store.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from api.limiter import LoginRateLimiter, get_client_address
from api.models import (
    CreatedResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    OkResponse,
    RegisterRequest,
    field_errors,
)
from api.responses import error_response, read_json_object
from auth.dependencies import try_get_session
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_session_cookie, create_session_token, hash_password, set_session_cookie

logger = logging.getLogger("verifier.api")

router = APIRouter()

_STORE_UNAVAILABLE = "Sorry, we're having trouble right now. Please try again later."
_USERNAME_TAKEN = "This username is already taken. Please choose another one."


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=CreatedResponse, status_code=201)
async def register(request: Request) -> JSONResponse:
    """Create a local account.

    The uniqueness check is read-then-write; the UNIQUE constraint on
    users.username catches the concurrent-registration case, which is
    reported with the same field error.
    """
    body = await read_json_object(request)
    if body is None:
        return error_response(400, "invalid_body", "The information you entered is not valid. Please try again.")

    try:
        data = RegisterRequest.model_validate(body)
    except ValidationError as exc:
        return error_response(
            400,
            "validation_error",
            "Please check your username and password format.",
            field_errors(exc),
        )

    user_store: UserStore = request.app.state.user_store
    taken = error_response(400, "username_taken", _USERNAME_TAKEN, {"username": [_USERNAME_TAKEN]})
    try:
        if await run_in_threadpool(user_store.get_by_username, data.username) is not None:
            return taken
        hashed = await run_in_threadpool(hash_password, data.password)
        user_id = await run_in_threadpool(user_store.create_user, data.username, hashed)
    except IntegrityError:
        logger.info("Concurrent registration lost the race for username=%s", data.username)
        return taken
    except SQLAlchemyError:
        logger.exception("User store unavailable during registration")
        return error_response(503, "store_unavailable", _STORE_UNAVAILABLE)

    logger.info("Registered user id=%s username=%s", user_id, data.username)
    return JSONResponse(status_code=201, content=CreatedResponse(id=user_id).model_dump())


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request) -> JSONResponse:
    """Authenticate with username and password; set the session cookie."""
    limiter: LoginRateLimiter = request.app.state.login_limiter
    client = get_client_address(request)
    decision = limiter.check(client)
    if not decision.allowed:
        logger.warning("Login rate limit hit for %s", client)
        resp = error_response(
            429,
            "rate_limited",
            "Too many login attempts. Please wait a moment before trying again.",
        )
        resp.headers["Retry-After"] = str(decision.retry_after_seconds or 60)
        return resp

    body = await read_json_object(request)
    if body is None:
        return error_response(400, "invalid_body", "Invalid request. Please check your input and try again.")

    try:
        creds = LoginRequest.model_validate(body)
    except ValidationError as exc:
        return error_response(
            400,
            "validation_error",
            "Please provide both username and password.",
            field_errors(exc),
        )

    user_store: UserStore = request.app.state.user_store
    try:
        user = await run_in_threadpool(authenticate_user, user_store, creds.username, creds.password)
    except SQLAlchemyError:
        logger.exception("User store unavailable during login")
        return error_response(503, "store_unavailable", _STORE_UNAVAILABLE)

    if user is None:
        resp = error_response(401, "bad_credentials", "The username or password you entered is incorrect.")
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(status_code=200, content=LoginResponse(username=user.username).model_dump())
    set_session_cookie(resp, create_session_token(user.username))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=OkResponse)
async def logout() -> JSONResponse:
    """Clear the session cookie. Succeeds whether or not a session existed."""
    resp = JSONResponse(content=OkResponse().model_dump())
    clear_session_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(request: Request) -> MeResponse:
    """Return the current username, or null for an anonymous caller."""
    session = try_get_session(request)
    return MeResponse(username=session.username if session else None)
