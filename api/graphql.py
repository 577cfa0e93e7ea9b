"""
api/graphql.py -- GraphQL endpoint for address validation (Strawberry).

Schema:
  type ValidationResult { success: Boolean!  message: String  lat: Float  lng: Float }
  type Query { validateAddress(postcode: String!, suburb: String!, state: String!): ValidationResult! }

Every outcome -- unauthenticated, bad input, no match, upstream failure --
comes back as a ValidationResult with success=false, never as a GraphQL error.

Per request, strictly in order:
  session check -> input check -> provider lookup -> log write -> result

Unauthenticated calls and input failures stop before the provider and are not
logged. Every attempt that reaches the provider is logged exactly once, and a
failed log write never changes the result.
"""

from __future__ import annotations

import logging
from typing import Optional

import strawberry
from fastapi.concurrency import run_in_threadpool
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from auth.dependencies import try_get_session
from core.models import UPSTREAM_LOG_MESSAGE, UpstreamError
from core.models import ValidationResult as DomainResult
from core.validator import check_address_input, normalize, validate_address
from verifications.models import VerificationLog
from verifications.recorder import record_verification

logger = logging.getLogger("verifier.api")

UNAUTHORIZED_MESSAGE = "Unauthorized: please log in first."


@strawberry.type
class ValidationResult:
    success: bool
    message: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_domain(cls, result: DomainResult) -> "ValidationResult":
        return cls(success=result.success, message=result.message, lat=result.lat, lng=result.lng)


@strawberry.type
class Query:
    @strawberry.field
    async def validate_address(self, info: Info, postcode: str, suburb: str, state: str) -> ValidationResult:
        request = info.context["request"]
        session = try_get_session(request)
        if session is None:
            return ValidationResult(success=False, message=UNAUTHORIZED_MESSAGE)

        problem = check_address_input(postcode, suburb, state)
        if problem:
            return ValidationResult(success=False, message=problem)

        entry = VerificationLog(
            username=session.username,
            postcode=normalize(postcode),
            suburb=normalize(suburb),
            state=normalize(state),
            success=False,
        )
        try:
            result = await run_in_threadpool(validate_address, postcode, suburb, state)
        except UpstreamError as exc:
            logger.warning("Upstream failure validating %s/%s for %s: %s", postcode, state, session.username, exc)
            result = DomainResult(success=False, message=str(exc))
            entry.message = UPSTREAM_LOG_MESSAGE
            entry.error = str(exc)
        else:
            entry.success = result.success
            entry.message = result.message
            entry.lat = result.lat
            entry.lng = result.lng

        await run_in_threadpool(record_verification, request.app.state.verification_store, entry)
        return ValidationResult.from_domain(result)


schema = strawberry.Schema(query=Query)

router = GraphQLRouter(schema)
