"""
api/responses.py -- Small helpers shared by the JSON route handlers.

Every failure path returns a normal JSONResponse with the ErrorResponse
envelope; nothing relies on an uncaught exception reaching the client.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models import ErrorResponse


def error_response(
    status_code: int,
    code: str,
    message: str,
    errors: Optional[dict[str, list[str]]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, error=message, field_errors=errors).to_content(),
    )


async def read_json_object(request: Request) -> Optional[dict]:
    """Return the request body as a dict, or None if it is not a JSON object."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
