from datetime import datetime, timezone

from sessionhub.modules.session import METADATA_FIELDS, CookieField, SessionRecord
from sessionhub.modules.session.models import SessionCandidate, discover_cookie_field
from sessionhub.modules.session.selector import (
    find_cookie_field,
    parse_timestamp,
    select_all,
    select_latest,
    sort_by_recency,
)


def candidate(internal_id, extracted_at):
    record = SessionRecord.from_mapping({"sessionId": internal_id, "extractedAt": extracted_at})
    return SessionCandidate(record=record, internal_id=internal_id, extracted_at=extracted_at)


def test_parse_timestamp_handles_zulu_and_naive():
    expected = datetime(2024, 1, 1, tzinfo=timezone.utc)

    assert parse_timestamp("2024-01-01T00:00:00Z") == expected
    assert parse_timestamp("2024-01-01T00:00:00.000Z") == expected
    assert parse_timestamp("2024-01-01T00:00:00") == expected


def test_parse_timestamp_garbage_ranks_as_sentinel():
    assert parse_timestamp("not a date") == parse_timestamp("1970-01-01T00:00:00.000Z")


def test_sort_most_recent_first():
    candidates = [
        candidate("old", "2024-01-01T00:00:00Z"),
        candidate("new", "2024-03-01T00:00:00Z"),
        candidate("mid", "2024-02-01T00:00:00+00:00"),
    ]

    assert [c.internal_id for c in sort_by_recency(candidates)] == ["new", "mid", "old"]


def test_sort_ties_keep_encounter_order():
    candidates = [
        candidate("first", "2024-01-01T00:00:00Z"),
        candidate("second", "2024-01-01T00:00:00.000Z"),
        candidate("third", "2024-01-01T00:00:00Z"),
    ]

    assert [c.internal_id for c in select_all(candidates)] == ["first", "second", "third"]


def test_select_latest():
    candidates = [
        candidate("a", "2024-01-01T00:00:00Z"),
        candidate("b", "2024-02-01T00:00:00Z"),
    ]

    assert select_latest(candidates).internal_id == "b"
    assert select_latest([]) is None


def test_select_does_not_mutate_input():
    candidates = [candidate("a", "2024-01-01T00:00:00Z"), candidate("b", "2024-02-01T00:00:00Z")]

    select_all(candidates)

    assert [c.internal_id for c in candidates] == ["a", "b"]


def test_cookie_discovery_skips_metadata_fields():
    record = SessionRecord.from_mapping(
        {
            "userEmail": "user@example.com",
            "userPassword": "secret",
            "sessionId": "abc",
            "extractedAt": "2024-01-01T00:00:00Z",
            "extractedFrom": "https://www.marketinout.com/",
            "source": "browser-extension",
            "ASPSESSIONIDQASCTRDB": "cookie-value",
        }
    )

    assert find_cookie_field(record) == CookieField(key="ASPSESSIONIDQASCTRDB", value="cookie-value")


def test_cookie_discovery_skips_empty_values():
    raw = {"sessionId": "abc", "emptyCookie": "", "realCookie": "value"}

    assert discover_cookie_field(raw) == CookieField(key="realCookie", value="value")


def test_cookie_discovery_none_when_only_metadata():
    record = SessionRecord.from_mapping({"sessionId": "abc", "source": "browser-extension"})

    assert find_cookie_field(record) is None


def test_cookie_discovery_never_returns_metadata_key():
    raw = {field: "value" for field in METADATA_FIELDS}

    assert discover_cookie_field(raw) is None
