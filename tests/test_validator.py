"""
tests/test_validator.py -- Unit tests for core/validator.py.

The provider is replaced by a plain function passed as fetch=, so these tests
cover the match policy only.
"""

from __future__ import annotations

import pytest

from core.models import VALID_MESSAGE, Locality, UpstreamError
from core.validator import check_address_input, fuzzy_key, match_locality, validate_address


def _fetch_returning(*rows: dict):
    calls: list[tuple] = []

    def fetch(q, state=None):
        calls.append((q, state))
        return [Locality.from_dict(r) for r in rows]

    fetch.calls = calls
    return fetch


SYDNEY = {"location": "SYDNEY", "postcode": 2000, "state": "NSW", "latitude": -33.8688, "longitude": 151.2093}
HAYMARKET = {"location": "HAYMARKET", "postcode": "2000", "state": "NSW", "latitude": "-33.8812", "longitude": "151.2046"}


class TestInputChecks:
    @pytest.mark.parametrize(
        ("postcode", "suburb", "state", "expected"),
        [
            ("2000", "Sydney", "NSW", None),
            (" 2000 ", " Sydney ", " nsw ", None),
            ("200", "Sydney", "NSW", "Postcode must be 4 digits."),
            ("20000", "Sydney", "NSW", "Postcode must be 4 digits."),
            ("abcd", "Sydney", "NSW", "Postcode must be 4 digits."),
            ("2000", "", "NSW", "Suburb is required."),
            ("2000", "Sydney", "NZ", "Invalid state."),
        ],
    )
    def test_check_address_input(self, postcode, suburb, state, expected) -> None:
        assert check_address_input(postcode, suburb, state) == expected

    def test_bad_input_never_calls_provider(self) -> None:
        fetch = _fetch_returning(SYDNEY)
        result = validate_address("20", "Sydney", "NSW", fetch=fetch)
        assert result.success is False
        assert result.message == "Postcode must be 4 digits."
        assert fetch.calls == []


class TestMatchPolicy:
    def test_exact_match_returns_coordinates(self) -> None:
        fetch = _fetch_returning(HAYMARKET, SYDNEY)
        result = validate_address("2000", "sydney", "nsw", fetch=fetch)
        assert result.success is True
        assert result.message == VALID_MESSAGE
        assert result.lat == pytest.approx(-33.8688)
        assert result.lng == pytest.approx(151.2093)
        assert fetch.calls == [("2000", "NSW")]

    def test_string_coordinates_are_parsed(self) -> None:
        result = validate_address("2000", "Haymarket", "NSW", fetch=_fetch_returning(HAYMARKET))
        assert result.lat == pytest.approx(-33.8812)
        assert result.lng == pytest.approx(151.2046)

    def test_unparseable_coordinates_are_none(self) -> None:
        row = {**SYDNEY, "latitude": "n/a", "longitude": None}
        result = validate_address("2000", "Sydney", "NSW", fetch=_fetch_returning(row))
        assert result.success is True
        assert result.lat is None
        assert result.lng is None

    def test_no_rows_in_state(self) -> None:
        row = {**SYDNEY, "state": "VIC"}
        result = validate_address("2000", "Sydney", "NSW", fetch=_fetch_returning(row))
        assert result.success is False
        assert result.message == "The postcode 2000 does not exist in the state NSW."

    def test_empty_provider_response(self) -> None:
        result = validate_address("0872", "Alice Springs", "NT", fetch=_fetch_returning())
        assert result.message == "The postcode 0872 does not exist in the state NT."

    def test_other_postcodes_are_filtered_out(self) -> None:
        row = {**SYDNEY, "postcode": "2001"}
        result = validate_address("2000", "Sydney", "NSW", fetch=_fetch_returning(row))
        assert result.message == "The postcode 2000 does not exist in the state NSW."

    def test_suburb_mismatch(self) -> None:
        result = validate_address("2000", "Melbourne", "NSW", fetch=_fetch_returning(SYDNEY, HAYMARKET))
        assert result.success is False
        assert result.message == "The postcode 2000 does not match the suburb Melbourne."

    def test_fuzzy_prefix_match(self) -> None:
        row = {"location": "BRISBANE CITY", "postcode": "4000", "state": "QLD", "latitude": -27.47, "longitude": 153.02}
        result = validate_address("4000", "Brisbane", "QLD", fetch=_fetch_returning(row))
        assert result.success is True
        assert result.lat == pytest.approx(-27.47)

    def test_fuzzy_match_ignores_punctuation(self) -> None:
        row = {"location": "ST KILDA EAST", "postcode": "3183", "state": "VIC", "latitude": -37.86, "longitude": 145.0}
        result = validate_address("3183", "St. Kilda-East", "VIC", fetch=_fetch_returning(row))
        assert result.success is True

    def test_strict_match_beats_earlier_fuzzy_match(self) -> None:
        rows = [
            Locality(location="NORTH SYDNEY", postcode="2060", state="NSW", latitude=1, longitude=1),
            Locality(location="SYDNEY", postcode="2060", state="NSW", latitude=2, longitude=2),
        ]
        assert match_locality(rows, "Sydney").latitude == 2

    def test_fuzzy_tie_break_is_first_in_order(self) -> None:
        rows = [
            Locality(location="SYDNEY SOUTH", postcode="2000", state="NSW", latitude=1, longitude=1),
            Locality(location="SYDNEY WEST", postcode="2000", state="NSW", latitude=2, longitude=2),
        ]
        assert match_locality(rows, "Syd").latitude == 1

    def test_fuzzy_key_collapses_separators(self) -> None:
        assert fuzzy_key("  St. Kilda--East ") == "ST KILDA EAST"

    def test_upstream_error_propagates(self) -> None:
        def failing_fetch(q, state=None):
            raise UpstreamError("Address lookup service is unreachable.")

        with pytest.raises(UpstreamError, match="unreachable"):
            validate_address("2000", "Sydney", "NSW", fetch=failing_fetch)
