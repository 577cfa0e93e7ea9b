"""
tests/test_graphql.py -- Integration tests for the validateAddress GraphQL query.

The address lookup service is never called: api.graphql.validate_address is
replaced per test so the resolver's ordering and logging behavior can be
checked without the network.

Coverage:
  - Anonymous call -> success=false, fixed message, provider not called, nothing logged
  - Bad input -> success=false, provider not called, nothing logged
  - Valid address -> result passed through, one log row with coordinates
  - Upstream failure -> success=false with the upstream message, logged with error
  - Log write failure -> result unchanged
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.models import UPSTREAM_LOG_MESSAGE, VALID_MESSAGE, UpstreamError, ValidationResult

QUERY = """
query Validate($postcode: String!, $suburb: String!, $state: String!) {
  validateAddress(postcode: $postcode, suburb: $suburb, state: $state) {
    success
    message
    lat
    lng
  }
}
"""


def _validate(client: TestClient, token: str | None, postcode: str, suburb: str, state: str) -> dict:
    cookies = {"session": token} if token else None
    resp = client.post(
        "/api/graphql",
        json={"query": QUERY, "variables": {"postcode": postcode, "suburb": suburb, "state": state}},
        cookies=cookies,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert "errors" not in body, body.get("errors")
    return body["data"]["validateAddress"]


def _log_count() -> int:
    return len(app.state.verification_store.fetch_recent(1000))


class _FakeValidator:
    """Stand-in for core.validator.validate_address that records its calls."""

    def __init__(self, result: ValidationResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def __call__(self, postcode: str, suburb: str, state: str) -> ValidationResult:
        self.calls.append((postcode, suburb, state))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_validator(monkeypatch: pytest.MonkeyPatch) -> _FakeValidator:
    fake = _FakeValidator(result=ValidationResult(success=True, message=VALID_MESSAGE, lat=-33.86, lng=151.21))
    monkeypatch.setattr("api.graphql.validate_address", fake)
    return fake


class TestValidateAddressGuards:
    def test_anonymous_is_rejected_without_lookup(self, fresh_client, fake_validator) -> None:
        client, _token = fresh_client
        before = _log_count()
        result = _validate(client, None, "2000", "Sydney", "NSW")
        assert result == {"success": False, "message": "Unauthorized: please log in first.", "lat": None, "lng": None}
        assert fake_validator.calls == []
        assert _log_count() == before

    def test_forged_cookie_is_treated_as_anonymous(self, fresh_client, fake_validator) -> None:
        client, _token = fresh_client
        result = _validate(client, "not-a-jwt", "2000", "Sydney", "NSW")
        assert result["success"] is False
        assert result["message"] == "Unauthorized: please log in first."
        assert fake_validator.calls == []

    @pytest.mark.parametrize(
        ("postcode", "suburb", "state", "message"),
        [
            ("200", "Sydney", "NSW", "Postcode must be 4 digits."),
            ("20a0", "Sydney", "NSW", "Postcode must be 4 digits."),
            ("2000", "   ", "NSW", "Suburb is required."),
            ("2000", "Sydney", "XYZ", "Invalid state."),
        ],
    )
    def test_bad_input_is_rejected_without_lookup(
        self, fresh_client, fake_validator, postcode: str, suburb: str, state: str, message: str
    ) -> None:
        client, token = fresh_client
        before = _log_count()
        result = _validate(client, token, postcode, suburb, state)
        assert result["success"] is False
        assert result["message"] == message
        assert fake_validator.calls == []
        assert _log_count() == before


class TestValidateAddressOutcomes:
    def test_valid_address_returns_coordinates_and_logs(self, fresh_client, fake_validator) -> None:
        client, token = fresh_client
        before = _log_count()
        result = _validate(client, token, " 2000 ", "sydney", "nsw")
        assert result == {"success": True, "message": VALID_MESSAGE, "lat": -33.86, "lng": 151.21}
        assert fake_validator.calls == [(" 2000 ", "sydney", "nsw")]

        assert _log_count() == before + 1
        entry = app.state.verification_store.fetch_recent(1)[0]
        assert entry.username == "testuser"
        assert (entry.postcode, entry.suburb, entry.state) == ("2000", "SYDNEY", "NSW")
        assert entry.success is True
        assert entry.message == VALID_MESSAGE
        assert entry.error is None
        assert entry.lat == pytest.approx(-33.86)
        assert entry.lng == pytest.approx(151.21)

    def test_mismatch_is_logged_as_failure(self, fresh_client, fake_validator) -> None:
        client, token = fresh_client
        message = "The postcode 2000 does not match the suburb Melbourne."
        fake_validator.result = ValidationResult(success=False, message=message)
        result = _validate(client, token, "2000", "Melbourne", "NSW")
        assert result == {"success": False, "message": message, "lat": None, "lng": None}

        entry = app.state.verification_store.fetch_recent(1)[0]
        assert entry.success is False
        assert entry.message == message
        assert entry.lat is None

    def test_upstream_error_is_reported_and_logged(self, fresh_client, fake_validator) -> None:
        client, token = fresh_client
        fake_validator.error = UpstreamError("Address lookup service timed out.")
        before = _log_count()
        result = _validate(client, token, "3000", "Melbourne", "VIC")
        assert result["success"] is False
        assert result["message"] == "Address lookup service timed out."

        assert _log_count() == before + 1
        entry = app.state.verification_store.fetch_recent(1)[0]
        assert entry.success is False
        assert entry.message == UPSTREAM_LOG_MESSAGE
        assert entry.error == "Address lookup service timed out."

    def test_log_failure_does_not_change_result(
        self, fresh_client, fake_validator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        client, token = fresh_client

        def broken_log(entry):
            raise RuntimeError("disk full")

        monkeypatch.setattr(app.state.verification_store, "log", broken_log)
        result = _validate(client, token, "2000", "Sydney", "NSW")
        assert result["success"] is True
        assert result["message"] == VALID_MESSAGE
