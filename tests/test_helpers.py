from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.scraping.helpers import (
    compute_cutoff,
    find_date_in_text,
    normalize_address,
    parse_date,
    render_template,
    resolve_link,
    try_parse_date,
)

NOW = datetime(2024, 3, 24, 12, 0, tzinfo=timezone.utc)


def test_parse_date_epoch_milliseconds() -> None:
    assert parse_date(1710460800000, now=NOW) == datetime(2024, 3, 15, tzinfo=timezone.utc)


def test_parse_date_epoch_milliseconds_string() -> None:
    assert parse_date("1710460800000", now=NOW) == datetime(2024, 3, 15, tzinfo=timezone.utc)


def test_parse_date_iso_with_zulu_suffix() -> None:
    assert parse_date("2024-03-15T10:30:00Z", now=NOW) == datetime(
        2024, 3, 15, 10, 30, tzinfo=timezone.utc
    )


def test_parse_date_rfc822() -> None:
    parsed = parse_date("Fri, 15 Mar 2024 10:30:00 -0500", now=NOW)
    assert parsed == datetime(2024, 3, 15, 15, 30, tzinfo=timezone.utc)


def test_parse_date_us_formats() -> None:
    assert parse_date("03/14/2024", now=NOW) == datetime(2024, 3, 14, tzinfo=timezone.utc)
    assert parse_date("03/14/24", now=NOW) == datetime(2024, 3, 14, tzinfo=timezone.utc)
    assert parse_date("March 14, 2024", now=NOW) == datetime(2024, 3, 14, tzinfo=timezone.utc)


def test_parse_date_falls_back_to_now_and_never_raises() -> None:
    assert parse_date("not a date", now=NOW) == NOW
    assert parse_date(None, now=NOW) == NOW
    assert parse_date({"nested": True}, now=NOW) == NOW


def test_parse_date_result_is_always_aware() -> None:
    parsed = parse_date("2024-03-15T10:30:00", now=NOW)
    assert parsed.tzinfo is not None
    assert parsed.utcoffset() == timedelta(0)


def test_try_parse_date_returns_none_for_garbage() -> None:
    assert try_parse_date("") is None
    assert try_parse_date("soon") is None
    assert try_parse_date(True) is None


def test_normalize_address_collapses_whitespace_and_commas() -> None:
    assert normalize_address("  123  Main St ,, , Nashville  ") == "123 Main St, Nashville"
    assert normalize_address(None) == ""
    assert normalize_address("   ") == ""


def test_find_date_in_text() -> None:
    assert find_date_in_text("Planning Agenda 03/14/24 - Rezoning Request") == datetime(
        2024, 3, 14, tzinfo=timezone.utc
    )
    assert find_date_in_text("No date here") is None


def test_compute_cutoff_subtracts_days() -> None:
    assert compute_cutoff(30, now=NOW) == NOW - timedelta(days=30)
    assert compute_cutoff(-5, now=NOW) == NOW


def test_resolve_link_handles_relative_and_blank() -> None:
    assert resolve_link("https://example.gov/agendas/", "2024/march.pdf") == (
        "https://example.gov/agendas/2024/march.pdf"
    )
    assert resolve_link("https://example.gov/agendas/", "/docs/a.pdf") == "https://example.gov/docs/a.pdf"
    assert resolve_link("https://example.gov/", "  ") is None


def test_render_template_substitutes_missing_fields_as_empty() -> None:
    rendered = render_template("${permit_type} - ${description}", {"permit_type": "Building"})
    assert rendered == "Building -"
