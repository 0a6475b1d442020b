from __future__ import annotations

from app.scraping.config.models import EntityConfig
from app.scraping.matching import CompetitorMatcher, MatchableEntity


def _matcher() -> CompetitorMatcher:
    return CompetitorMatcher(
        [
            EntityConfig(name="Camden Property Trust", keywords=("Camden",)),
            EntityConfig(name="Greystar", keywords=("greystar", "GREP")),
            EntityConfig(name="Camden Lookalike", keywords=("camden",)),
            EntityConfig(name="Inactive Co", keywords=("inactive",), active=False),
        ]
    )


def test_match_is_case_insensitive_substring() -> None:
    assert _matcher().match("New CAMDEN apartments on 5th") == "Camden Property Trust"
    assert _matcher().match("grep holdings llc") == "Greystar"


def test_first_entity_in_declared_order_wins() -> None:
    assert _matcher().match("camden and greystar joint venture") == "Camden Property Trust"


def test_inactive_entities_never_match() -> None:
    matcher = _matcher()
    assert matcher.match("inactive builder") is None
    assert "Inactive Co" not in matcher.entity_names


def test_no_match_returns_none() -> None:
    assert _matcher().match("single family remodel") is None
    assert _matcher().match(None) is None
    assert _matcher().match("") is None


def test_match_signal_searches_title_address_and_raw_data() -> None:
    matcher = _matcher()
    assert (
        matcher.match_signal(
            title="Multi-family permit",
            address="100 Broadway",
            raw_data={"applicant": "Greystar Development LLC"},
        )
        == "Greystar"
    )
    assert matcher.match_signal(title="Permit", address=None, raw_data=None) is None


def test_accepts_any_object_with_name_and_keywords() -> None:
    matcher = CompetitorMatcher([MatchableEntity(name="Mill Creek", keywords=("mill creek",))])
    assert matcher.match("Mill Creek Residential Trust") == "Mill Creek"
