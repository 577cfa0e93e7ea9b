"""
API request and response models for the verifier REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
verifications/models.py, which own the internal domain representation. Route
handlers map between the two.

Request bodies are validated inside the handlers (Model.model_validate) rather
than through FastAPI's body injection so that failures come back as 400 with
per-field messages -- see field_errors().
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[A-Za-z0-9._-]+$"
_USERNAME_RE = re.compile(USERNAME_PATTERN)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Body returned on every 4xx/5xx response.

    fieldErrors maps a request field to its messages and is omitted when the
    failure is not tied to a specific field.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ok: bool = False
    code: str
    error: str
    field_errors: Optional[dict[str, list[str]]] = Field(default=None, alias="fieldErrors")

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten a pydantic ValidationError into {field: [message, ...]}.

    Messages raised by our own validators come through without pydantic's
    "Value error, " prefix.
    """
    result: dict[str, list[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "__root__"
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if err["type"] == "value_error" and ctx_error else err["msg"]
        result.setdefault(field, []).append(message)
    return result


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    The username is trimmed. The password is passed through exactly as typed,
    matching what registration hashed.
    """

    username: str
    password: str

    @field_validator("username")
    @classmethod
    def username_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Password is required")
        return v


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register.

    Enforces the account policy before any store access:
      username -- 3 to 50 characters from [A-Za-z0-9._-]
      password -- at least 8 characters with an uppercase letter, a lowercase
                  letter, a digit, and a symbol. Capped at 72 bytes of
                  UTF-8, the bcrypt input limit.
    """

    username: str
    password: str

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        if not 3 <= len(v) <= 50:
            raise ValueError("Username must be between 3 and 50 characters.")
        if not _USERNAME_RE.match(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'.")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters.")
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes.")
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain an uppercase letter.")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain a lowercase letter.")
        if not re.search(r"[0-9]", v):
            raise ValueError("Password must contain a digit.")
        if not re.search(r"[^A-Za-z0-9]", v):
            raise ValueError("Password must contain a symbol.")
        return v


class LoginResponse(BaseModel):
    ok: bool = True
    username: str


class CreatedResponse(BaseModel):
    """201 body for endpoints that create a record."""

    ok: bool = True
    id: int


class OkResponse(BaseModel):
    ok: bool = True


class MeResponse(BaseModel):
    username: Optional[str] = None


# ---------------------------------------------------------------------------
# Verification logs
# ---------------------------------------------------------------------------


class VerifyRequest(BaseModel):
    """Request body for POST /api/verify -- a client-reported attempt.

    postcode, suburb, and state are normalized to trimmed uppercase, the same
    form the GraphQL resolver logs.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    postcode: str = Field(min_length=1, max_length=10)
    suburb: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1, max_length=10)
    success: StrictBool
    message: Optional[str] = Field(default=None, max_length=1000)
    error: Optional[str] = Field(default=None, max_length=1000)
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("postcode", "suburb", "state")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.upper()


class LogItem(BaseModel):
    """One row in GET /api/logs."""

    id: int
    username: str
    postcode: str
    suburb: str
    state: str
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    created_at: Optional[str] = None


class LogsResponse(BaseModel):
    items: list[LogItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
