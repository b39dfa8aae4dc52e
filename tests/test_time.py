from __future__ import annotations

from datetime import datetime, timezone

from story_portfolio.util.time import parse_iso_utc


def test_parse_iso_utc_accepts_z_and_offsets() -> None:
    assert parse_iso_utc("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert parse_iso_utc("2024-01-15T12:30:00+02:00") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert parse_iso_utc("2024-01-15T10:30:00") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_parse_iso_utc_accepts_any_fraction_length() -> None:
    assert parse_iso_utc("2024-01-15T10:30:00.5Z") == datetime(2024, 1, 15, 10, 30, 0, 500000, tzinfo=timezone.utc)
    assert parse_iso_utc("2024-01-15T10:30:00.1234567Z") == datetime(
        2024, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc
    )


def test_parse_iso_utc_rejects_garbage() -> None:
    assert parse_iso_utc("") is None
    assert parse_iso_utc("yesterday") is None
