from __future__ import annotations

import pytest

from app.domain.competitor_watch import ScrapeOptions
from app.scraping.adapters import GISPermitAdapter
from app.scraping.config.models import DatasetConfig
from app.scraping.errors import ConfigurationError, SourceFetchError
from conftest import FIXED_NOW, FakeResponse
from db.models.competitor_signal import SignalType
from db.models.scrape_job import ScrapeJobStatus

LAYER_URL = "https://gis.example.gov/arcgis/rest/services/Permits/MapServer/0"

MAR_15_2024_MS = 1710460800000
MAR_16_2024_MS = MAR_15_2024_MS + 86_400_000
JAN_01_2024_MS = 1704067200000


def _dataset(**overrides) -> DatasetConfig:
    values = {
        "type": "arcgis",
        "label": "Building Permits",
        "url": LAYER_URL,
        "date_field": "date_entered",
        "address_field": "address",
    }
    values.update(overrides)
    return DatasetConfig(**values)


def _features() -> dict:
    return {
        "features": [
            {
                "attributes": {
                    "OBJECTID": 1,
                    "permit_type": "Multi-Family",
                    "description": "New 120-unit apartment building for Camden",
                    "estimated_cost": 6_000_000,
                    "date_entered": MAR_15_2024_MS,
                    "address": "100  Main St ,, Nashville",
                }
            },
            {
                "attributes": {
                    "OBJECTID": 2,
                    "permit_type": "Residential Remodel",
                    "description": "Kitchen update",
                    "estimated_cost": 40_000,
                    "date_entered": MAR_16_2024_MS,
                }
            },
            {
                "attributes": {
                    "OBJECTID": 3,
                    "permit_type": "Commercial",
                    "description": "Old office shell",
                    "date_entered": JAN_01_2024_MS,
                }
            },
            {"attributes": {"permit_type": "Commercial", "description": "missing id"}},
            {"geometry": {"x": 1, "y": 2}},
        ]
    }


def test_scrape_persists_significant_permits(context, fake_session, store) -> None:
    fake_session.routes[LAYER_URL] = FakeResponse(json_data=_features())
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    result = adapter.scrape(ScrapeOptions(days_back=30))

    assert result.records_found == 2
    assert result.records_new == 1

    signals = store.list_signals()
    assert len(signals) == 1
    signal = signals[0]
    assert signal.type == SignalType.PERMIT
    assert signal.source_id == "1"
    assert signal.source == "Building Permits"
    assert signal.jurisdiction == "tn_nashville"
    assert signal.priority == 8
    assert signal.title.startswith("Multi-Family: New 120-unit")
    assert signal.address == "100 Main St, Nashville"
    assert signal.competitor_match == "Camden Property Trust"
    assert signal.confidence == pytest.approx(0.8)
    assert signal.analyzed is False


def test_rerun_finds_same_records_but_inserts_nothing(context, fake_session, store) -> None:
    fake_session.routes[LAYER_URL] = FakeResponse(json_data=_features())
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    adapter.scrape(ScrapeOptions(days_back=30))
    second = adapter.scrape(ScrapeOptions(days_back=30))

    assert second.records_found == 2
    assert second.records_new == 0
    assert store.count_signals() == 1

    jobs = store.list_jobs()
    assert len(jobs) == 2
    assert all(job.status == ScrapeJobStatus.DONE for job in jobs)
    assert sorted(job.records_new for job in jobs) == [0, 1]


def test_query_uses_cutoff_date(context, fake_session) -> None:
    fake_session.routes[LAYER_URL] = FakeResponse(json_data={"features": []})
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    adapter.scrape(ScrapeOptions(days_back=30))

    call = fake_session.calls[0]
    assert call["url"] == f"{LAYER_URL}/query"
    assert call["params"]["where"] == "date_entered >= '2024-02-23'"
    assert call["params"]["outFields"] == "*"
    assert call["params"]["f"] == "json"


def test_title_and_link_templates(context) -> None:
    adapter = GISPermitAdapter(
        context=context,
        jurisdiction="tn_nashville",
        dataset=_dataset(
            title_template="${permit_type} - ${description}",
            link_template="https://permits.example.gov/${OBJECTID}",
        ),
    )
    attributes = {"OBJECTID": 9, "permit_type": "Commercial", "description": "x" * 300}

    assert adapter.build_title(attributes) == ("Commercial - " + "x" * 300)[:200]
    assert adapter.build_link(attributes) == "https://permits.example.gov/9"


def test_missing_date_falls_back_to_clock(context) -> None:
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    candidate = adapter.extract({"attributes": {"OBJECTID": 5, "permit_type": "Retail"}})

    assert candidate.when_iso == FIXED_NOW
    assert candidate.signal is not None
    assert candidate.signal.address is None


def test_arcgis_error_body_fails_job(context, fake_session, store) -> None:
    fake_session.routes[LAYER_URL] = FakeResponse(json_data={"error": {"code": 400, "message": "Invalid query"}})
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    with pytest.raises(SourceFetchError, match="Invalid query"):
        adapter.scrape(ScrapeOptions(days_back=30))

    jobs = store.list_jobs()
    assert len(jobs) == 1
    assert jobs[0].status == ScrapeJobStatus.FAILED
    assert "Invalid query" in jobs[0].error_message


def test_retryable_status_is_retried_with_backoff(context, fake_session, sleeps) -> None:
    fake_session.routes[LAYER_URL] = [
        FakeResponse(status_code=503),
        FakeResponse(json_data={"features": []}),
    ]
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    result = adapter.scrape(ScrapeOptions(days_back=30))

    assert result.records_found == 0
    assert len(fake_session.calls) == 2
    assert sleeps == [1.0]


def test_exhausted_retries_raise_source_fetch_error(context, fake_session, sleeps) -> None:
    fake_session.routes[LAYER_URL] = [FakeResponse(status_code=502)]
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    with pytest.raises(SourceFetchError):
        adapter.scrape(ScrapeOptions(days_back=30))

    assert len(fake_session.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_not_found_is_not_retried(context, fake_session) -> None:
    fake_session.routes[LAYER_URL] = [FakeResponse(status_code=404)]
    adapter = GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=_dataset())

    with pytest.raises(SourceFetchError) as exc_info:
        adapter.scrape(ScrapeOptions(days_back=30))

    assert exc_info.value.status_code == 404
    assert len(fake_session.calls) == 1


@pytest.mark.parametrize(
    "dataset",
    [
        _dataset(url=""),
        _dataset(label=""),
        _dataset(type="socrata"),
    ],
)
def test_invalid_dataset_config_fails_at_construction(context, dataset) -> None:
    with pytest.raises(ConfigurationError):
        GISPermitAdapter(context=context, jurisdiction="tn_nashville", dataset=dataset)
