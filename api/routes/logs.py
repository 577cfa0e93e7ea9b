"""
api/routes/logs.py -- Verification log read and client-reported write endpoints.

Routes:
  GET  /api/logs    -- recent attempts; anonymous callers get an empty list
  POST /api/verify  -- record an attempt reported by the client (session required)

Auth policy:
  GET /logs never fails for lack of a session: anonymous is a normal state and
    gets {items: []} without touching the store.
  POST /verify requires a session (401 otherwise). Unlike the GraphQL path, a
    store failure here IS the response -- the write is the whole request.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from api.models import CreatedResponse, LogItem, LogsResponse, VerifyRequest, field_errors
from api.responses import error_response, read_json_object
from auth.dependencies import get_session, try_get_session
from auth.models import Session
from core.config import get_settings
from verifications.models import VerificationLog
from verifications.store import VerificationStore

logger = logging.getLogger("verifier.api")

router = APIRouter()


@router.get("/logs", response_model=LogsResponse)
async def list_logs(request: Request) -> LogsResponse:
    """Return the most recent verification attempts, newest first."""
    session = try_get_session(request)
    if session is None:
        return LogsResponse(items=[])

    store: VerificationStore = request.app.state.verification_store
    logs = await run_in_threadpool(store.fetch_recent, get_settings().logs_page_size)
    return LogsResponse(items=[LogItem(**asdict(entry)) for entry in logs])


@router.post("/verify", response_model=CreatedResponse, status_code=201)
async def record_attempt(request: Request, session: Session = Depends(get_session)) -> JSONResponse:
    """Record a validation attempt on behalf of the signed-in user."""
    body = await read_json_object(request)
    if body is None:
        return error_response(400, "invalid_body", "Request body must be a JSON object.")

    try:
        data = VerifyRequest.model_validate(body)
    except ValidationError as exc:
        errors = field_errors(exc)
        first_field, messages = next(iter(errors.items()))
        return error_response(400, "validation_error", f"{first_field}: {messages[0]}", errors)

    entry = VerificationLog(
        username=session.username,
        postcode=data.postcode,
        suburb=data.suburb,
        state=data.state,
        success=data.success,
        message=data.message,
        error=data.error,
        lat=data.lat,
        lng=data.lng,
    )
    store: VerificationStore = request.app.state.verification_store
    try:
        log_id = await run_in_threadpool(store.log, entry)
    except SQLAlchemyError:
        logger.exception("Verification store rejected client-reported attempt")
        return error_response(400, "store_error", "The verification could not be recorded.")

    return JSONResponse(status_code=201, content=CreatedResponse(id=log_id).model_dump())
